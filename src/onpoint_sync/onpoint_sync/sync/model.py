from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from ..core.enums import DataSource

T = TypeVar("T")


@dataclass(frozen=True)
class MergedView(Generic[T]):
    """What the user sees: remote half (fresh or cached) merged with local work."""

    records: list[T]
    source: DataSource
    notice: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.source != DataSource.REMOTE


@dataclass
class DrainReport:
    synced: dict[str, list[str]] = field(default_factory=dict)
    failed: dict[str, list[str]] = field(default_factory=dict)
    discarded: list[str] = field(default_factory=list)
    skipped: bool = False

    def add_synced(self, kind: str, record_id: str) -> None:
        self.synced.setdefault(kind, []).append(record_id)

    def add_failed(self, kind: str, record_id: str) -> None:
        self.failed.setdefault(kind, []).append(record_id)

    @property
    def synced_count(self) -> int:
        return sum(len(v) for v in self.synced.values())

    @property
    def failed_count(self) -> int:
        return sum(len(v) for v in self.failed.values())

    def as_dict(self) -> dict:
        return {
            "synced": self.synced,
            "failed": self.failed,
            "discarded": self.discarded,
            "skipped": self.skipped,
            "synced_count": self.synced_count,
            "failed_count": self.failed_count,
        }


@dataclass(frozen=True)
class SubmitResult(Generic[T]):
    """Outcome of an offline-first write: the record and whether it is still queued."""

    record: Optional[T]
    queued: bool = False
    notice: Optional[str] = None
