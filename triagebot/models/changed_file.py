"""Changed file data model."""

from typing import Optional

from pydantic import BaseModel


class ChangedFile(BaseModel):
    """A file touched by a commit or pull request."""

    filename: str
    status: Optional[str] = None  # 'added', 'modified', 'removed', 'renamed', ...
    patch: Optional[str] = None
    content: Optional[str] = None
