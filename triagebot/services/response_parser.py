"""Extraction of structured results from raw model output."""

from typing import List


def parse_text(output: str) -> str:
    """Free-text mode: the output with surrounding whitespace removed."""
    return (output or "").strip()


def parse_labels(output: str) -> List[str]:
    """
    Label-list mode.

    Lower-cases the output, splits on commas, trims each token and drops
    blanks and repeats. Order follows first occurrence. Tokens outside the
    known vocabulary are kept.
    """
    labels: List[str] = []
    for token in (output or "").lower().split(","):
        label = token.strip()
        if label and label not in labels:
            labels.append(label)
    return labels
