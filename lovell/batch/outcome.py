"""Aggregate result of a settled batch."""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class BatchOutcome(Generic[T]):
    """
    Results and errors of a batch where every task ran to completion.

    results has one slot per submitted task, in submission order, holding
    None where the task failed. errors pairs each failed task's index with
    the exception its future was rejected with.
    """

    results: list[T | None] = field(default_factory=list)
    errors: list[tuple[int, BaseException]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if no task failed."""
        return not self.errors

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def succeeded(self) -> int:
        return self.total - self.failed

    def error_for(self, index: int) -> BaseException | None:
        """Get the error for a task index, or None if it succeeded."""
        for failed_index, error in self.errors:
            if failed_index == index:
                return error
        return None

    def to_dict(self) -> dict[str, Any]:
        """Summary suitable for JSON output."""
        return {
            "success": self.success,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": [f"Task {index}: {error}" for index, error in self.errors],
        }
