"""
Batch reporting.

Accumulates per-type counts, per-script embed counts and the ordered list
of failures for one run, and decides the run's status:

    UP_TO_DATE  selection produced nothing to process
    FAILED      at least one failure was recorded
    SUCCESS     otherwise
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from vnext_sync.discovery.config import ComponentType
from vnext_sync.embed import EmbedResult
from vnext_sync.reconcile import ComponentResult, Outcome

SCRIPTS_LABEL = "Scripts"
UNKNOWN_LABEL = "Unknown"


class BatchStatus(str, Enum):
    UP_TO_DATE = "up_to_date"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class TypeStats:
    created: int = 0
    updated: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated + self.failed + self.skipped

    def to_dict(self) -> dict[str, int]:
        return {
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "skipped": self.skipped,
        }


@dataclass(frozen=True)
class FailureRecord:
    type: str
    file: Path
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "file": str(self.file), "error": self.error}


def type_label(component_type: ComponentType | None) -> str:
    return component_type.label if component_type else UNKNOWN_LABEL


@dataclass
class BatchReport:
    """Aggregate result of one run.

    ``candidates`` counts every file selection handed to the run (scripts
    and definitions); it is what separates "up to date" from "processed N
    files without failures".
    """

    operation: str = "update"
    dry_run: bool = False
    candidates: int = 0
    stats: dict[str, TypeStats] = field(default_factory=dict)
    script_updates: dict[str, int] = field(default_factory=dict)
    failures: list[FailureRecord] = field(default_factory=list)
    results: list[ComponentResult] = field(default_factory=list)
    reinitialized: bool | None = None
    elapsed_ms: float = 0.0

    def stats_for(self, label: str) -> TypeStats:
        return self.stats.setdefault(label, TypeStats())

    def add_candidates(self, count: int) -> None:
        self.candidates += count

    # ── Recording ────────────────────────────────────────────────

    def record(self, result: ComponentResult) -> None:
        label = type_label(result.component_type)
        stats = self.stats_for(label)
        self.results.append(result)

        if result.outcome is Outcome.CREATED:
            stats.created += 1
        elif result.outcome is Outcome.UPDATED:
            stats.updated += 1
        elif result.outcome is Outcome.FAILED:
            stats.failed += 1
            self.failures.append(FailureRecord(label, result.file, result.error or "Unknown error"))
        else:
            stats.skipped += 1

    def record_embed(self, result: EmbedResult) -> None:
        stats = self.stats_for(SCRIPTS_LABEL)
        for json_path, error in result.errors.items():
            stats.failed += 1
            self.failures.append(FailureRecord(SCRIPTS_LABEL, json_path, f"{result.script.name}: {error}"))

        if result.success:
            stats.updated += 1
            self.script_updates[result.script.name] = result.total_updates
        elif not result.errors:
            stats.skipped += 1

    def record_script_failure(self, script: Path, error: str) -> None:
        self.stats_for(SCRIPTS_LABEL).failed += 1
        self.failures.append(FailureRecord(SCRIPTS_LABEL, script, error))

    # ── Aggregates ───────────────────────────────────────────────

    @property
    def total_failed(self) -> int:
        return len(self.failures)

    @property
    def totals(self) -> TypeStats:
        total = TypeStats()
        for label, stats in self.stats.items():
            if label == SCRIPTS_LABEL:
                continue
            total.created += stats.created
            total.updated += stats.updated
            total.failed += stats.failed
            total.skipped += stats.skipped
        return total

    @property
    def status(self) -> BatchStatus:
        if self.failures:
            return BatchStatus.FAILED
        if self.candidates == 0:
            return BatchStatus.UP_TO_DATE
        return BatchStatus.SUCCESS

    @property
    def exit_code(self) -> int:
        return 1 if self.status is BatchStatus.FAILED else 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "operation": self.operation,
            "status": self.status.value,
            "dry_run": self.dry_run,
            "candidates": self.candidates,
            "stats": {label: stats.to_dict() for label, stats in self.stats.items()},
            "failures": [failure.to_dict() for failure in self.failures],
        }
        if self.script_updates:
            data["script_updates"] = dict(self.script_updates)
        if self.reinitialized is not None:
            data["reinitialized"] = self.reinitialized
        if self.elapsed_ms:
            data["elapsed_ms"] = round(self.elapsed_ms, 2)
        if self.results:
            data["results"] = [result.to_dict() for result in self.results]
        return data
