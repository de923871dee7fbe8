"""
Log Entry Data Structures for Lovell.

Structured entries for individual task attempts and whole batches.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, ClassVar


@dataclass
class TaskLogEntry:
    """Log entry for one attempt of a batch task."""

    kind: ClassVar[str] = "task"

    # Identity
    timestamp: str  # ISO 8601
    job_id: str  # Batch the task belongs to
    task_index: int  # Position in the submitted batch

    # Input
    command: str = ""
    attempt: int = 1

    # Output
    success: bool = False
    exit_code: int | None = None
    error: str | None = None
    error_type: str | None = None

    # Metrics
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaskLogEntry":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class BatchLogEntry:
    """Log entry summarizing a finished batch."""

    kind: ClassVar[str] = "batch"

    timestamp: str
    job_id: str
    mode: str = "settled"  # "settled" or "fail_fast"

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    duration_ms: int = 0

    # Effective processor settings
    config: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BatchLogEntry":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def now_iso() -> str:
    """Get current timestamp in ISO 8601 format."""
    return datetime.now().isoformat()
