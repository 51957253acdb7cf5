"""Data models for the pull request triage bot."""

from .api_response import WebhookResponse
from .changed_file import ChangedFile
from .commands import CommandType, SlashCommand
from .events import (
    ISSUE_COMMENT_CREATED,
    PULL_REQUEST_OPENED,
    PULL_REQUEST_SYNCHRONIZE,
    SUBSCRIBED_EVENTS,
    IssueCommentCreated,
    PullRequestOpened,
    PullRequestSynchronized,
    RepositoryRef,
    WebhookEvent,
    parse_webhook_event,
)

__all__ = [
    # Event models
    "RepositoryRef",
    "PullRequestOpened",
    "PullRequestSynchronized",
    "IssueCommentCreated",
    "WebhookEvent",
    "parse_webhook_event",
    "PULL_REQUEST_OPENED",
    "PULL_REQUEST_SYNCHRONIZE",
    "ISSUE_COMMENT_CREATED",
    "SUBSCRIBED_EVENTS",
    # File models
    "ChangedFile",
    # Command models
    "CommandType",
    "SlashCommand",
    # API response models
    "WebhookResponse",
]
