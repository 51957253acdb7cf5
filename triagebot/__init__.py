"""Pull request triage bot: summaries, reviews, labels and reviewer routing."""

__version__ = "0.1.0"
