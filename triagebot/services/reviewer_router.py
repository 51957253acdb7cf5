"""
Reviewer routing from applied labels.

The label to reviewer table is injected at construction and frozen, so each
deployment (or test) can supply its own.
"""

from types import MappingProxyType
from typing import Iterable, List, Mapping, Sequence

from triagebot.utils.logging import get_logger

logger = get_logger(__name__)


class ReviewerRouter:
    """Maps labels to reviewer identities and requests their reviews."""

    def __init__(self, github, reviewer_map: Mapping[str, Sequence[str]]):
        self.github = github
        self.reviewer_map = MappingProxyType(
            {label: tuple(reviewers) for label, reviewers in reviewer_map.items()}
        )

    def route_reviewers(self, labels: Iterable[str]) -> List[str]:
        """
        Flat-map labels through the table.
        
        Unmapped labels contribute nothing. The result holds no duplicates and
        keeps first-occurrence order.
        """
        reviewers: List[str] = []
        for label in labels:
            for reviewer in self.reviewer_map.get(label, ()):
                if reviewer not in reviewers:
                    reviewers.append(reviewer)
        return reviewers

    async def request_for_labels(
        self,
        owner: str,
        repo: str,
        number: int,
        labels: Iterable[str],
    ) -> List[str]:
        """
        Route labels to reviewers and request them when there are any.
        
        Raises:
            PermissionDeniedError: If a reviewer is not a collaborator
            UpstreamError: On any other request failure
        """
        reviewers = self.route_reviewers(labels)
        if not reviewers:
            logger.info(f"No reviewers mapped for PR #{number}")
            return reviewers

        await self.github.request_reviewers(owner, repo, number, reviewers)
        logger.info(
            f"Requested reviewers {', '.join(reviewers)} on PR #{number}",
            extra={"repository": f"{owner}/{repo}", "pr_number": number},
        )
        return reviewers
