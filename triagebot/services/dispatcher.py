"""
Event Dispatcher component.

Routes typed webhook events to their handlers through an explicit dispatch
table. Every event is handled inside its own failure boundary: an
unrecovered error is logged and ends that event only. The dispatcher keeps
no state between events.
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

from triagebot.errors import PermissionDeniedError
from triagebot.models.changed_file import ChangedFile
from triagebot.models.commands import CommandType, SlashCommand
from triagebot.models.events import (
    ISSUE_COMMENT_CREATED,
    PULL_REQUEST_OPENED,
    PULL_REQUEST_SYNCHRONIZE,
    IssueCommentCreated,
    PullRequestOpened,
    PullRequestSynchronized,
    RepositoryRef,
    WebhookEvent,
)
from triagebot.services.command_parser import parse_command
from triagebot.services.label_reconciler import LabelReconciler
from triagebot.services.prompt_builder import (
    MAX_FILES,
    build_label_prompt,
    build_review_prompt,
    build_summary_prompt,
)
from triagebot.services.response_parser import parse_labels, parse_text
from triagebot.services.reviewer_router import ReviewerRouter
from triagebot.utils.logging import ContextLoggerAdapter, get_logger

logger = get_logger(__name__)

# Generation bounds per prompt shape: (max_tokens, temperature)
SUMMARY_GENERATION = (150, 0.7)
LABEL_GENERATION = (20, 0.0)
REVIEW_GENERATION = (400, 0.2)

CHECK_RUN_STATUS = "completed"
CHECK_RUN_CONCLUSION = "neutral"

Handler = Callable[..., Awaitable[None]]


def format_summary_comment(summary: str) -> str:
    return f"### 📝 PR Summary\n\n{summary}"


def format_review_comment(sha: str, review: str) -> str:
    return f"### 🤖 Commit Review ({sha[:7]})\n\n{review}\n\n---\n"


class EventDispatcher:
    """Dispatches webhook events to the triage flows."""

    def __init__(
        self,
        github,
        llm,
        label_reconciler: LabelReconciler,
        reviewer_router: ReviewerRouter,
        check_run_name: str = "AI Review",
    ):
        """
        Args:
            github: Hosting client (see ``GitHubClient``)
            llm: Model client (see ``LLMClient``)
            label_reconciler: Applies labels, creating missing ones
            reviewer_router: Maps labels to reviewers
            check_run_name: Name of the check run created for commit reviews
        """
        self.github = github
        self.llm = llm
        self.label_reconciler = label_reconciler
        self.reviewer_router = reviewer_router
        self.check_run_name = check_run_name

        self.handlers: Dict[str, Handler] = {
            PULL_REQUEST_OPENED: self.handle_pull_request_opened,
            PULL_REQUEST_SYNCHRONIZE: self.handle_pull_request_synchronize,
            ISSUE_COMMENT_CREATED: self.handle_issue_comment_created,
        }
        self.command_handlers: Dict[CommandType, Handler] = {
            CommandType.SUMMARIZE: self._command_summarize,
            CommandType.REVIEW: self._command_review,
            CommandType.LABELS: self._command_labels,
            CommandType.ASSIGN: self._command_assign,
        }

    @classmethod
    def from_settings(cls, settings, github, llm) -> "EventDispatcher":
        return cls(
            github=github,
            llm=llm,
            label_reconciler=LabelReconciler(github, color=settings.label_color),
            reviewer_router=ReviewerRouter(github, settings.reviewer_map),
            check_run_name=settings.check_run_name,
        )

    async def dispatch(self, event: WebhookEvent, delivery_id: Optional[str] = None) -> bool:
        """
        Handle one event inside a failure boundary.
        
        Args:
            event: Typed webhook event
            delivery_id: Webhook delivery identifier for log correlation
            
        Returns:
            True if the handler completed, False if it failed or no handler
            is registered
        """
        log = logger.with_context(
            delivery_id=delivery_id,
            event=event.kind,
            repository=event.repository.full_name,
            pr_number=getattr(event, "number", None) or getattr(event, "issue_number", None),
        )

        handler = self.handlers.get(event.kind)
        if handler is None:
            log.warning(f"No handler registered for {event.kind}")
            return False

        try:
            await handler(event, log)
        except Exception as e:
            log.error(f"Error handling {event.kind}: {e}", exc_info=True)
            return False

        return True

    # Event handlers

    async def handle_pull_request_opened(self, event: PullRequestOpened, log: ContextLoggerAdapter) -> None:
        """Enrich a PR opened without a description."""
        if (event.body or "").strip():
            log.info(f"PR #{event.number} already has a description")
            return

        owner, repo = event.repository.owner, event.repository.name

        await self.summarize(event.repository, event.number, event.title, event.html_url, log)

        files = await self.github.list_pull_request_files(owner, repo, event.number)
        labels = await self.suggest_labels(event.title, event.body or "", [f.filename for f in files])
        if not labels:
            log.info(f"No labels suggested for PR #{event.number}")
            return

        applied = await self.label_reconciler.apply_labels(owner, repo, event.number, labels)

        try:
            await self.reviewer_router.request_for_labels(owner, repo, event.number, applied)
        except PermissionDeniedError as e:
            log.warning(f"One or more reviewers are not collaborators. Skipping. ({e})")

    async def handle_pull_request_synchronize(self, event: PullRequestSynchronized, log: ContextLoggerAdapter) -> None:
        await self.review_commit(event.repository, event.number, event.head_sha, log)

    async def handle_issue_comment_created(self, event: IssueCommentCreated, log: ContextLoggerAdapter) -> None:
        if not event.is_pull_request:
            log.debug(f"Comment on issue #{event.issue_number} is not on a pull request")
            return

        command = parse_command(event.comment_body)
        handler = self.command_handlers.get(command.command)
        if handler is None:
            return

        log.info(f"Slash: {command.command.value} on PR #{event.issue_number}")
        await handler(event.repository, event.issue_number, command, log)

    # Flows

    async def summarize(
        self,
        repository: RepositoryRef,
        number: int,
        title: str,
        url: str,
        log: ContextLoggerAdapter,
    ) -> Optional[str]:
        """Generate a PR summary and post it as a comment."""
        raw = await self.llm.complete(build_summary_prompt(title, url), *SUMMARY_GENERATION)
        summary = parse_text(raw)
        if not summary:
            log.warning(f"Model returned an empty summary for PR #{number}")
            return None

        await self.github.create_comment(repository.owner, repository.name, number, format_summary_comment(summary))
        log.info(f"Commented summary on PR #{number}")
        return summary

    async def suggest_labels(self, title: str, description: str, filenames: List[str]) -> List[str]:
        raw = await self.llm.complete(build_label_prompt(title, description, filenames), *LABEL_GENERATION)
        return parse_labels(raw)

    async def review_commit(
        self,
        repository: RepositoryRef,
        number: int,
        sha: str,
        log: ContextLoggerAdapter,
    ) -> Optional[str]:
        """
        Review the files changed by a commit.
        
        Posts the review as a comment and attaches it to a neutral check run
        on the commit.
        """
        owner, repo = repository.owner, repository.name

        files = await self.github.list_commit_files(owner, repo, sha)
        if not files:
            log.info(f"PR #{number} commit {sha} has no file changes")
            return None

        # Let every read settle before failing so none is left running.
        results = await asyncio.gather(
            *(self._fetch_content(owner, repo, changed, sha) for changed in files[:MAX_FILES]),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        with_content: List[ChangedFile] = list(results)

        raw = await self.llm.complete(build_review_prompt(with_content), *REVIEW_GENERATION)
        review = parse_text(raw)
        if not review:
            log.warning(f"Model returned an empty review for PR #{number} @ {sha}")
            return None

        await self.github.create_comment(owner, repo, number, format_review_comment(sha, review))
        await self.github.create_check_run(
            owner,
            repo,
            name=self.check_run_name,
            head_sha=sha,
            status=CHECK_RUN_STATUS,
            conclusion=CHECK_RUN_CONCLUSION,
            title=f"Senior Review for PR #{number}",
            summary=review,
        )
        log.info(f"Posted review for PR #{number} @ {sha}")
        return review

    async def _fetch_content(self, owner: str, repo: str, changed: ChangedFile, sha: str) -> ChangedFile:
        if changed.status == "removed":
            return changed
        content = await self.github.get_file_content(owner, repo, changed.filename, sha)
        return changed.model_copy(update={"content": content})

    # Slash commands

    async def _command_summarize(self, repository: RepositoryRef, number: int, command: SlashCommand,
                                 log: ContextLoggerAdapter) -> None:
        pr = await self.github.get_pull_request(repository.owner, repository.name, number)
        await self.summarize(repository, number, pr["title"], pr["html_url"], log)

    async def _command_review(self, repository: RepositoryRef, number: int, command: SlashCommand,
                              log: ContextLoggerAdapter) -> None:
        pr = await self.github.get_pull_request(repository.owner, repository.name, number)
        await self.review_commit(repository, number, pr["head"]["sha"], log)

    async def _command_labels(self, repository: RepositoryRef, number: int, command: SlashCommand,
                              log: ContextLoggerAdapter) -> None:
        if not command.args:
            log.info("Slash: /labels without labels, skipping")
            return
        await self.label_reconciler.apply_labels(repository.owner, repository.name, number, command.args)

    async def _command_assign(self, repository: RepositoryRef, number: int, command: SlashCommand,
                              log: ContextLoggerAdapter) -> None:
        if not command.args:
            log.info("Slash: /assign without reviewers, skipping")
            return
        try:
            await self.github.request_reviewers(repository.owner, repository.name, number, command.args)
        except PermissionDeniedError as e:
            log.warning(f"One or more reviewers are not collaborators. Skipping. ({e})")
            return
        log.info(f"Slash: requested reviewers {', '.join(command.args)} on PR #{number}")
