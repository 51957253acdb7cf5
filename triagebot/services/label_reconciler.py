"""
Label reconciliation.

Attaches labels to an issue or pull request, creating any label the
repository does not have yet.
"""

from typing import Iterable, List

from triagebot.errors import NotFoundError
from triagebot.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LABEL_COLOR = "cfd3d7"


class LabelReconciler:
    """Ensures labels exist on a repository and are attached to an issue."""

    def __init__(self, github, color: str = DEFAULT_LABEL_COLOR):
        """
        Args:
            github: Hosting client (see ``GitHubClient``)
            color: Hex color (without ``#``) for labels created on demand
        """
        self.github = github
        self.color = color

    async def apply_labels(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        labels: Iterable[str],
    ) -> List[str]:
        """
        Attach each label to the issue.
        
        A label whose add is rejected as not found is created once with the
        default color and the add is retried once. Any other failure
        propagates.
        
        Returns:
            The labels that were attached, in request order
        
        Raises:
            UpstreamError: On any failure other than the recovered not-found
        """
        applied: List[str] = []
        for label in labels:
            if not label or label in applied:
                continue

            try:
                await self.github.add_labels(owner, repo, issue_number, [label])
            except NotFoundError:
                logger.info(f"Label '{label}' missing on {owner}/{repo}, creating it")
                await self.github.create_label(owner, repo, label, self.color)
                await self.github.add_labels(owner, repo, issue_number, [label])

            applied.append(label)

        if applied:
            logger.info(
                f"Applied labels {', '.join(applied)} to #{issue_number}",
                extra={"repository": f"{owner}/{repo}", "pr_number": issue_number},
            )
        return applied
