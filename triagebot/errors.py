"""
Error taxonomy shared by the collaborator clients and the event handlers.

Collaborator failures are classified once, at the client boundary, so that
recovery logic can branch on exception type instead of message text.
"""

from typing import Optional


class TriageError(Exception):
    """Base exception for triage bot errors."""
    pass


class ConfigurationError(TriageError):
    """A mandatory startup option is missing or unusable."""
    pass


class InvalidPayloadError(TriageError):
    """A webhook payload is missing fields its event type requires."""
    pass


class UpstreamError(TriageError):
    """A collaborator (hosting API or model service) call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(UpstreamError):
    """The addressed resource does not exist (e.g. an unknown label)."""
    pass


class PermissionDeniedError(UpstreamError):
    """The request was refused, e.g. a reviewer who is not a collaborator."""
    pass


class TransientError(UpstreamError):
    """Transient error that may succeed on retry."""
    pass
