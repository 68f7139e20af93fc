import threading
from typing import List, Tuple

from pydantic import BaseModel, Field

from errors import BatchError, FormatterError


class FrozenBaseModel(BaseModel):
    """A base model that is immutable, similar to a frozen dataclass."""
    model_config = {'frozen': True}


class ChangeEntry(FrozenBaseModel):
    """One blank line inserted before an exit statement."""
    kind: str = Field(description="Keyword of the exit statement (return, break, continue, goto, fallthrough).")
    unit: str = Field(description="Unit the statement belongs to.")
    line: int = Field(gt=0)
    column: int = Field(gt=0)

    def __str__(self) -> str:
        return f"- insert blank line before {self.kind} at {self.unit}:{self.line}:{self.column}"


class FormatResult(FrozenBaseModel):
    """Outcome of formatting one unit."""
    unit: str = Field(description="File path, or <stdin>.")
    content: bytes = Field(description="Formatted bytes; the original bytes when not modified.")
    modified: bool = Field(default=False)
    changes: Tuple[ChangeEntry, ...] = Field(default=(), description="Insertions in source order.")

    @property
    def details(self) -> str:
        return "".join(f"{change}\n" for change in self.changes)


class DirectorySkipped(FrozenBaseModel):
    """Notice that the walk did not descend into a directory."""
    path: str


class BatchOutcome:
    """Results and errors accumulated across every unit of a batch run."""

    def __init__(self):
        self.results: List[FormatResult] = []
        self.errors: List[FormatterError] = []
        self._lock = threading.Lock()

    def add_result(self, result: FormatResult) -> None:
        with self._lock:
            self.results.append(result)

    def add_error(self, error: FormatterError) -> None:
        with self._lock:
            self.errors.append(error)

    @property
    def modified(self) -> List[FormatResult]:
        return [r for r in self.results if r.modified]

    def raise_for_errors(self) -> None:
        if self.errors:
            raise BatchError(self.errors)
