"""Webhook event data models.

GitHub payloads are validated against the handful of fields each event
needs and flattened into one closed variant per subscribed event.
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from triagebot.errors import InvalidPayloadError


PULL_REQUEST_OPENED = "pull_request.opened"
PULL_REQUEST_SYNCHRONIZE = "pull_request.synchronize"
ISSUE_COMMENT_CREATED = "issue_comment.created"

SUBSCRIBED_EVENTS = (PULL_REQUEST_OPENED, PULL_REQUEST_SYNCHRONIZE, ISSUE_COMMENT_CREATED)


class RepositoryRef(BaseModel):
    """Identity of the repository an event originates from."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class _PullRequestFields(BaseModel):
    repository: RepositoryRef
    number: int
    title: str
    body: Optional[str] = None
    html_url: str
    head_sha: str


class PullRequestOpened(_PullRequestFields):
    """A pull request was opened."""

    kind: Literal["pull_request.opened"] = PULL_REQUEST_OPENED


class PullRequestSynchronized(_PullRequestFields):
    """New commits were pushed to a pull request's head branch."""

    kind: Literal["pull_request.synchronize"] = PULL_REQUEST_SYNCHRONIZE


class IssueCommentCreated(BaseModel):
    """A comment was posted on an issue or pull request."""

    kind: Literal["issue_comment.created"] = ISSUE_COMMENT_CREATED
    repository: RepositoryRef
    issue_number: int
    comment_body: str
    is_pull_request: bool


WebhookEvent = Annotated[
    Union[PullRequestOpened, PullRequestSynchronized, IssueCommentCreated],
    Field(discriminator="kind"),
]


# Raw GitHub payload shapes (fields used only)

class _Owner(BaseModel):
    login: str


class _Repository(BaseModel):
    name: str
    owner: _Owner


class _Head(BaseModel):
    sha: str


class _PullRequest(BaseModel):
    number: int
    title: str
    body: Optional[str] = None
    html_url: str
    head: _Head


class _PullRequestPayload(BaseModel):
    pull_request: _PullRequest
    repository: _Repository


class _Comment(BaseModel):
    body: str


class _Issue(BaseModel):
    number: int
    pull_request: Optional[Dict[str, Any]] = None


class _IssueCommentPayload(BaseModel):
    comment: _Comment
    issue: _Issue
    repository: _Repository


def _repository_ref(repository: _Repository) -> RepositoryRef:
    return RepositoryRef(owner=repository.owner.login, name=repository.name)


def parse_webhook_event(event_name: str, payload: Dict[str, Any]) -> WebhookEvent:
    """
    Build a typed event from a raw webhook payload.
    
    Args:
        event_name: Event name in ``<X-GitHub-Event>.<action>`` form
        payload: Decoded JSON payload
        
    Returns:
        The matching event variant
        
    Raises:
        InvalidPayloadError: If the event is not subscribed or required
            fields are missing
    """
    try:
        if event_name in (PULL_REQUEST_OPENED, PULL_REQUEST_SYNCHRONIZE):
            raw = _PullRequestPayload.model_validate(payload)
            model = PullRequestOpened if event_name == PULL_REQUEST_OPENED else PullRequestSynchronized
            return model(
                repository=_repository_ref(raw.repository),
                number=raw.pull_request.number,
                title=raw.pull_request.title,
                body=raw.pull_request.body,
                html_url=raw.pull_request.html_url,
                head_sha=raw.pull_request.head.sha,
            )

        if event_name == ISSUE_COMMENT_CREATED:
            raw = _IssueCommentPayload.model_validate(payload)
            return IssueCommentCreated(
                repository=_repository_ref(raw.repository),
                issue_number=raw.issue.number,
                comment_body=raw.comment.body,
                is_pull_request=raw.issue.pull_request is not None,
            )
    except ValidationError as e:
        raise InvalidPayloadError(f"Invalid {event_name} payload: {e.error_count()} field error(s)") from e

    raise InvalidPayloadError(f"Unsupported event: {event_name}")
