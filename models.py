from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FileStatus(str, Enum):
    added = "added"
    modified = "modified"
    removed = "removed"
    renamed = "renamed"


class ChangedFile(BaseModel):
    """One file entry of a pull request, as listed by the repository host."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    filename: str
    status: FileStatus = FileStatus.modified
    additions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)
    changes: int = Field(default=0, ge=0)
    patch: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _known_status(cls, value):
        # GitHub also reports "copied", "changed" and "unchanged"
        if isinstance(value, str) and value not in FileStatus.__members__:
            return FileStatus.modified
        return value


class LineKind(str, Enum):
    added = "added"
    removed = "removed"
    context = "context"


class Line(BaseModel):
    kind: LineKind
    content: str
    # position in the new file version; None for removed lines
    line_number: Optional[int] = None


class Hunk(BaseModel):
    start_line: int
    lines: List[Line] = Field(default_factory=list)
    added_line_numbers: List[int] = Field(default_factory=list)

    @property
    def end_line(self) -> int:
        return self.start_line + len(self.added_line_numbers) - 1

    def context_text(self) -> str:
        return "\n".join(line.content for line in self.lines)


class ReviewMode(str, Enum):
    comprehensive = "comprehensive"
    overview = "overview"

    @property
    def label(self) -> str:
        if self == ReviewMode.overview:
            return "Overview (large PR)"
        return "Comprehensive"


class ReviewBudget(BaseModel):
    total_changes: int
    limit: int
    mode: ReviewMode


class InlineCommentState(BaseModel):
    """Inline comment counter owned by a single review run."""

    max_inline_comments: int
    comments_created: int = 0

    @property
    def exhausted(self) -> bool:
        return self.comments_created >= self.max_inline_comments

    def record(self) -> None:
        self.comments_created += 1


class RetryPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)


class PRMetadata(BaseModel):
    number: int
    title: str = ""
    body: Optional[str] = None
    author: str = "unknown"
    head_sha: Optional[str] = None


class ReviewOutcome(BaseModel):
    files_reviewed: int = 0
    budget: Optional[ReviewBudget] = None
    summary_comment_id: Optional[int] = None
    inline_comments: int = 0
    skipped: bool = False
