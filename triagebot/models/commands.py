"""Slash command data models."""

from enum import Enum
from typing import List

from pydantic import BaseModel


class CommandType(str, Enum):
    """Manual actions a PR comment can trigger."""

    SUMMARIZE = "summarize"
    REVIEW = "review"
    LABELS = "labels"
    ASSIGN = "assign"
    UNRECOGNIZED = "unrecognized"


class SlashCommand(BaseModel):
    """A parsed PR comment command and its trailing arguments."""

    command: CommandType
    args: List[str] = []
