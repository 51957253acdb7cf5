"""
Utility modules for the triage bot.
"""

from triagebot.utils.logging import (
    get_logger,
    setup_logging,
    log_webhook_event,
    log_api_call,
)
from triagebot.utils.resilience import retry_with_backoff

__all__ = [
    "get_logger",
    "setup_logging",
    "log_webhook_event",
    "log_api_call",
    "retry_with_backoff",
]
