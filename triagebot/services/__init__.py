"""Business logic services package."""

from triagebot.services.command_parser import parse_command
from triagebot.services.dispatcher import EventDispatcher
from triagebot.services.github_client import GitHubClient, InstallationTokenProvider
from triagebot.services.label_reconciler import LabelReconciler
from triagebot.services.llm_client import LLMClient
from triagebot.services.reviewer_router import ReviewerRouter

__all__ = [
    'EventDispatcher',
    'GitHubClient',
    'InstallationTokenProvider',
    'LabelReconciler',
    'LLMClient',
    'ReviewerRouter',
    'parse_command',
]
