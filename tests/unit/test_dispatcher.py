"""Unit tests for the event dispatcher and triage flows."""

import asyncio
import logging
from unittest.mock import AsyncMock, call

import pytest

from triagebot.config import DEFAULT_REVIEWER_MAP
from triagebot.errors import NotFoundError, PermissionDeniedError, UpstreamError
from triagebot.models.changed_file import ChangedFile
from triagebot.models.events import (
    IssueCommentCreated,
    PullRequestOpened,
    PullRequestSynchronized,
    RepositoryRef,
)
from triagebot.services.dispatcher import EventDispatcher
from triagebot.services.label_reconciler import LabelReconciler
from triagebot.services.reviewer_router import ReviewerRouter


REPO = RepositoryRef(owner="octo", name="repo")


@pytest.fixture
def github():
    client = AsyncMock()
    client.list_pull_request_files.return_value = [ChangedFile(filename="a.ts")]
    return client


@pytest.fixture
def llm():
    return AsyncMock()


@pytest.fixture
def dispatcher(github, llm):
    return EventDispatcher(
        github=github,
        llm=llm,
        label_reconciler=LabelReconciler(github),
        reviewer_router=ReviewerRouter(github, DEFAULT_REVIEWER_MAP),
    )


def opened(body=None, title="Fix crash"):
    return PullRequestOpened(
        repository=REPO,
        number=7,
        title=title,
        body=body,
        html_url="https://github.com/octo/repo/pull/7",
        head_sha="abc1234def",
    )


def synchronized(sha="abc1234def"):
    return PullRequestSynchronized(
        repository=REPO,
        number=7,
        title="Fix crash",
        body="",
        html_url="https://github.com/octo/repo/pull/7",
        head_sha=sha,
    )


def comment(body, is_pull_request=True):
    return IssueCommentCreated(
        repository=REPO,
        issue_number=7,
        comment_body=body,
        is_pull_request=is_pull_request,
    )


def test_dispatch_table_covers_subscribed_events(dispatcher):
    assert set(dispatcher.handlers) == {
        "pull_request.opened",
        "pull_request.synchronize",
        "issue_comment.created",
    }


class TestPullRequestOpened:

    @pytest.mark.asyncio
    async def test_blank_body_runs_full_enrichment(self, dispatcher, github, llm):
        llm.complete.side_effect = ["  Fixes a crash on startup.  ", "bugfix"]
        github.add_labels.side_effect = [NotFoundError("Label not found", status_code=404), None]

        assert await dispatcher.dispatch(opened(body="   ")) is True

        github.create_comment.assert_awaited_once_with(
            "octo", "repo", 7, "### 📝 PR Summary\n\nFixes a crash on startup."
        )
        summary_call, label_call = llm.complete.await_args_list
        assert "Title: Fix crash" in summary_call.args[0]
        assert summary_call.args[1:] == (150, 0.7)
        assert "Title: Fix crash" in label_call.args[0]
        assert "- a.ts" in label_call.args[0]
        assert label_call.args[1:] == (20, 0.0)

        github.create_label.assert_awaited_once_with("octo", "repo", "bugfix", "cfd3d7")
        assert github.add_labels.await_args_list == [
            call("octo", "repo", 7, ["bugfix"]),
            call("octo", "repo", 7, ["bugfix"]),
        ]
        github.request_reviewers.assert_not_called()

    @pytest.mark.asyncio
    async def test_mapped_labels_request_reviewers(self, dispatcher, github, llm):
        llm.complete.side_effect = ["Summary", "Bug, frontend, bug"]

        assert await dispatcher.dispatch(opened()) is True

        github.request_reviewers.assert_awaited_once_with("octo", "repo", 7, ["qa-team", "ui-team"])

    @pytest.mark.asyncio
    async def test_non_blank_body_is_noop(self, dispatcher, github, llm):
        assert await dispatcher.dispatch(opened(body="Already described")) is True

        llm.complete.assert_not_called()
        github.create_comment.assert_not_called()
        github.add_labels.assert_not_called()

    @pytest.mark.asyncio
    async def test_reviewer_not_collaborator_is_warning(self, dispatcher, github, llm, caplog):
        llm.complete.side_effect = ["Summary", "bug"]
        github.request_reviewers.side_effect = PermissionDeniedError(
            "qa-team is not a collaborator", status_code=422
        )

        with caplog.at_level(logging.WARNING):
            assert await dispatcher.dispatch(opened()) is True

        github.create_comment.assert_awaited_once()
        github.add_labels.assert_awaited_once_with("octo", "repo", 7, ["bug"])
        assert any(
            r.levelno == logging.WARNING and "not collaborators" in r.getMessage()
            for r in caplog.records
        )

    @pytest.mark.asyncio
    async def test_reviewer_missing_permission_fails_event(self, dispatcher, github, llm, caplog):
        llm.complete.side_effect = ["Summary", "bug"]
        github.request_reviewers.side_effect = UpstreamError(
            "Resource not accessible by integration", status_code=403
        )

        with caplog.at_level(logging.WARNING):
            assert await dispatcher.dispatch(opened()) is False

        github.create_comment.assert_awaited_once()
        github.add_labels.assert_awaited_once_with("octo", "repo", 7, ["bug"])
        assert not any("not collaborators" in r.getMessage() for r in caplog.records)
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    @pytest.mark.asyncio
    async def test_label_failure_ends_event_after_summary(self, dispatcher, github, llm, caplog):
        llm.complete.side_effect = ["Summary", "bug"]
        github.add_labels.side_effect = UpstreamError("Validation Failed", status_code=422)

        with caplog.at_level(logging.ERROR):
            assert await dispatcher.dispatch(opened()) is False

        github.create_comment.assert_awaited_once()
        github.request_reviewers.assert_not_called()
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    @pytest.mark.asyncio
    async def test_empty_summary_not_posted(self, dispatcher, github, llm):
        llm.complete.side_effect = ["   ", "docs"]

        assert await dispatcher.dispatch(opened()) is True

        github.create_comment.assert_not_called()
        github.add_labels.assert_awaited_once_with("octo", "repo", 7, ["docs"])

    @pytest.mark.asyncio
    async def test_no_suggested_labels(self, dispatcher, github, llm):
        llm.complete.side_effect = ["Summary", " , "]

        assert await dispatcher.dispatch(opened()) is True

        github.add_labels.assert_not_called()
        github.request_reviewers.assert_not_called()


class TestPullRequestSynchronize:

    @pytest.mark.asyncio
    async def test_review_uses_first_three_files(self, dispatcher, github, llm):
        github.list_commit_files.return_value = [
            ChangedFile(filename=f"src/f{i}.py", status="modified", patch=f"+change {i}")
            for i in range(5)
        ]
        github.get_file_content.side_effect = lambda owner, repo, path, ref: f"body of {path}"
        llm.complete.return_value = "\n- Looks fine.\n"

        assert await dispatcher.dispatch(synchronized()) is True

        assert github.get_file_content.await_count == 3
        prompt = llm.complete.await_args.args[0]
        diff, files = prompt.split("<<DIFF>>")[1].split("<<FILES>>")
        for i in range(3):
            assert f"File: src/f{i}.py" in diff
            assert f"body of src/f{i}.py" in files
        for i in (3, 4):
            assert f"src/f{i}.py" not in prompt
        assert llm.complete.await_args.args[1:] == (400, 0.2)

        github.create_comment.assert_awaited_once_with(
            "octo", "repo", 7, "### 🤖 Commit Review (abc1234)\n\n- Looks fine.\n\n---\n"
        )
        github.create_check_run.assert_awaited_once_with(
            "octo",
            "repo",
            name="AI Review",
            head_sha="abc1234def",
            status="completed",
            conclusion="neutral",
            title="Senior Review for PR #7",
            summary="- Looks fine.",
        )

    @pytest.mark.asyncio
    async def test_no_changed_files_is_noop(self, dispatcher, github, llm):
        github.list_commit_files.return_value = []

        assert await dispatcher.dispatch(synchronized()) is True

        llm.complete.assert_not_called()
        github.create_comment.assert_not_called()
        github.create_check_run.assert_not_called()

    @pytest.mark.asyncio
    async def test_removed_files_not_fetched(self, dispatcher, github, llm):
        github.list_commit_files.return_value = [
            ChangedFile(filename="old.py", status="removed", patch="-gone"),
            ChangedFile(filename="new.py", status="added", patch="+here"),
        ]
        github.get_file_content.return_value = "print('here')"
        llm.complete.return_value = "Review"

        assert await dispatcher.dispatch(synchronized()) is True

        github.get_file_content.assert_awaited_once_with("octo", "repo", "new.py", "abc1234def")

    @pytest.mark.asyncio
    async def test_model_failure_is_contained(self, dispatcher, github, llm):
        github.list_commit_files.return_value = [ChangedFile(filename="a.py", patch="+x")]
        github.get_file_content.return_value = "x"
        llm.complete.side_effect = UpstreamError("rate limited", status_code=429)

        assert await dispatcher.dispatch(synchronized()) is False

        github.create_comment.assert_not_called()
        github.create_check_run.assert_not_called()

    @pytest.mark.asyncio
    async def test_content_failure_waits_for_sibling_reads(self, dispatcher, github, llm):
        github.list_commit_files.return_value = [
            ChangedFile(filename=name, patch="+x") for name in ("a.py", "b.py", "c.py")
        ]
        finished = []

        async def fetch(owner, repo, path, ref):
            if path == "a.py":
                raise UpstreamError("Server Error", status_code=500)
            for _ in range(3):
                await asyncio.sleep(0)
            finished.append(path)
            return "x"

        github.get_file_content.side_effect = fetch

        assert await dispatcher.dispatch(synchronized()) is False

        assert sorted(finished) == ["b.py", "c.py"]
        llm.complete.assert_not_called()
        github.create_comment.assert_not_called()
        github.create_check_run.assert_not_called()


class TestIssueCommentCreated:

    @pytest.mark.asyncio
    async def test_labels_command_bypasses_model(self, dispatcher, github, llm):
        assert await dispatcher.dispatch(comment("/labels bug docs")) is True

        llm.complete.assert_not_called()
        assert github.add_labels.await_args_list == [
            call("octo", "repo", 7, ["bug"]),
            call("octo", "repo", 7, ["docs"]),
        ]

    @pytest.mark.asyncio
    async def test_assign_command_bypasses_router(self, dispatcher, github, llm):
        assert await dispatcher.dispatch(comment("/assign alice bob")) is True

        github.request_reviewers.assert_awaited_once_with("octo", "repo", 7, ["alice", "bob"])
        llm.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_assign_non_collaborator_is_warning(self, dispatcher, github):
        github.request_reviewers.side_effect = PermissionDeniedError("not a collaborator", status_code=422)

        assert await dispatcher.dispatch(comment("/assign mallory")) is True

    @pytest.mark.asyncio
    async def test_assign_missing_permission_fails_event(self, dispatcher, github):
        github.request_reviewers.side_effect = UpstreamError(
            "Resource not accessible by integration", status_code=403
        )

        assert await dispatcher.dispatch(comment("/assign alice")) is False

    @pytest.mark.asyncio
    async def test_summarize_command_reruns_summary(self, dispatcher, github, llm):
        github.get_pull_request.return_value = {
            "title": "Add search",
            "html_url": "https://github.com/octo/repo/pull/7",
            "head": {"sha": "fff0000"},
        }
        llm.complete.return_value = "Adds search."

        assert await dispatcher.dispatch(comment("/summarize")) is True

        assert "Title: Add search" in llm.complete.await_args.args[0]
        github.create_comment.assert_awaited_once_with("octo", "repo", 7, "### 📝 PR Summary\n\nAdds search.")

    @pytest.mark.asyncio
    async def test_review_command_reviews_head_commit(self, dispatcher, github, llm):
        github.get_pull_request.return_value = {
            "title": "Add search",
            "html_url": "https://github.com/octo/repo/pull/7",
            "head": {"sha": "fff0000aaa"},
        }
        github.list_commit_files.return_value = []

        assert await dispatcher.dispatch(comment("/review")) is True

        github.list_commit_files.assert_awaited_once_with("octo", "repo", "fff0000aaa")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["LGTM", "/unknown", "/labels", "/assign"])
    async def test_ignored_comments(self, dispatcher, github, llm, body):
        assert await dispatcher.dispatch(comment(body)) is True

        llm.complete.assert_not_called()
        github.add_labels.assert_not_called()
        github.request_reviewers.assert_not_called()
        github.create_comment.assert_not_called()

    @pytest.mark.asyncio
    async def test_plain_issue_comment_ignored(self, dispatcher, github):
        assert await dispatcher.dispatch(comment("/labels bug", is_pull_request=False)) is True

        github.add_labels.assert_not_called()


@pytest.mark.asyncio
async def test_failure_does_not_affect_next_event(dispatcher, github, llm):
    github.add_labels.side_effect = [UpstreamError("boom", status_code=500), None]

    assert await dispatcher.dispatch(comment("/labels bug")) is False
    assert await dispatcher.dispatch(comment("/labels docs")) is True

    assert github.add_labels.await_args_list[-1] == call("octo", "repo", 7, ["docs"])
