"""
Reconciliation engine.

Brings the index and the publish API in line with one definition on disk::

    missing key/version ─────────────────────────────────► SKIPPED
    lookup(flow, key) ── found ──► delete ──► publish ──► UPDATED | FAILED
                     └─ not found ──────────► publish ──► CREATED | FAILED

The API has no partial update, so replacing a definition means removing
its index row first and publishing the full payload again. There is no
rollback across the steps: a definition left unpublished by an
interrupted run is simply "not found" on the next one and gets created.

``MISSING_ONLY`` mode publishes only what the index does not know yet;
existing entries are left alone and reported as ``EXISTING``.

Every item is processed to completion before the next starts and nothing
raised while processing an item escapes :meth:`ReconciliationEngine.run`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from vnext_sync.core.errors import SyncError
from vnext_sync.core.logging import LogContext, get_logger
from vnext_sync.core.protocols import DefinitionPublisher, IndexStore
from vnext_sync.core.settings import DeleteFailurePolicy
from vnext_sync.discovery.config import ComponentType
from vnext_sync.discovery.folders import DiscoveredFolders
from vnext_sync.metadata import ComponentDefinition, detect_component_type, extract_metadata

if TYPE_CHECKING:
    from vnext_sync.report import BatchReport

logger = get_logger(__name__)


class Outcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    EXISTING = "existing"
    FAILED = "failed"


class ReconcileMode(str, Enum):
    REPLACE = "replace"
    MISSING_ONLY = "missing_only"


@dataclass
class ComponentResult:
    """What happened to one definition file."""

    file: Path
    outcome: Outcome
    component_type: ComponentType | None = None
    key: str | None = None
    version: str | None = None
    flow: str | None = None
    instance_id: str | None = None
    was_deleted: bool = False
    error: str | None = None
    error_details: Any = None
    status_code: int | None = None

    @property
    def published(self) -> bool:
        return self.outcome in (Outcome.CREATED, Outcome.UPDATED)

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.FAILED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "file": str(self.file),
            "outcome": self.outcome.value,
            "component_type": self.component_type.value if self.component_type else None,
            "key": self.key,
            "version": self.version,
            "flow": self.flow,
        }
        if self.instance_id:
            data["instance_id"] = self.instance_id
        if self.was_deleted:
            data["was_deleted"] = True
        if self.error is not None:
            data["error"] = self.error
        if self.error_details is not None:
            data["error_details"] = self.error_details
        if self.status_code is not None:
            data["status_code"] = self.status_code
        return data


class ReconciliationEngine:
    """Applies the delete-then-publish protocol to definitions.

    Args:
        index: Lookup/delete access to the installed-instance index.
        api: Publisher for definition payloads.
        mode: ``REPLACE`` (default) or ``MISSING_ONLY``.
        delete_policy: Whether a failed delete still lets publish go ahead.
        dry_run: Look up only; report what would be deleted and published.
    """

    def __init__(
        self,
        index: IndexStore,
        api: DefinitionPublisher,
        *,
        mode: ReconcileMode = ReconcileMode.REPLACE,
        delete_policy: DeleteFailurePolicy = DeleteFailurePolicy.CONTINUE,
        dry_run: bool = False,
    ) -> None:
        self.index = index
        self.api = api
        self.mode = mode
        self.delete_policy = delete_policy
        self.dry_run = dry_run

    def reconcile(self, definition: ComponentDefinition) -> ComponentResult:
        result = ComponentResult(
            file=definition.path,
            outcome=Outcome.SKIPPED,
            component_type=definition.component_type,
            key=definition.key,
            version=definition.version,
            flow=definition.flow,
        )
        if not definition.is_reconcilable:
            logger.info("definition_skipped", reason="missing key or version")
            return result

        try:
            existing = self.index.find_latest(definition.flow, definition.key)
        except SyncError as exc:
            return self._fail(result, exc.message, exc)

        if existing is not None and self.mode is ReconcileMode.MISSING_ONLY:
            result.outcome = Outcome.EXISTING
            result.instance_id = existing.instance_id
            logger.debug("definition_exists", instance_id=existing.instance_id)
            return result

        if existing is not None:
            result.was_deleted = True
            if not self.dry_run:
                try:
                    self.index.delete(definition.flow, existing.instance_id)
                except SyncError as exc:
                    if self.delete_policy is DeleteFailurePolicy.ABORT:
                        result.was_deleted = False
                        return self._fail(result, f"Delete failed: {exc.message}", exc)
                    logger.info("delete_failed_continuing", instance_id=existing.instance_id, **exc.to_dict())

        created = Outcome.UPDATED if existing is not None else Outcome.CREATED
        if self.dry_run:
            result.outcome = created
            logger.info("definition_would_publish", outcome=created.value)
            return result

        published = self.api.publish(definition.payload)
        if not published.success:
            result.error_details = published.error_details
            result.status_code = published.status_code
            return self._fail(result, published.error or "Publish failed")

        result.outcome = created
        result.instance_id = published.instance_id
        logger.info("definition_published", outcome=created.value, instance_id=published.instance_id)
        return result

    def process_file(self, path: Path, discovered: DiscoveredFolders) -> ComponentResult:
        """Read *path* and reconcile it; every failure becomes a result."""
        try:
            definition = extract_metadata(path, discovered)
        except SyncError as exc:
            result = ComponentResult(
                file=path,
                outcome=Outcome.FAILED,
                component_type=detect_component_type(path, discovered),
            )
            return self._fail(result, exc.message, exc)

        try:
            return self.reconcile(definition)
        except Exception as exc:
            logger.exception("reconcile_unexpected_error")
            result = ComponentResult(
                file=path,
                outcome=Outcome.FAILED,
                component_type=definition.component_type,
                key=definition.key,
                version=definition.version,
                flow=definition.flow,
            )
            return self._fail(result, f"{type(exc).__name__}: {exc}")

    def run(
        self,
        files: Iterable[Path],
        discovered: DiscoveredFolders,
        report: BatchReport,
    ) -> BatchReport:
        """Reconcile *files* in order, then re-initialize if anything was published."""
        any_published = False
        for path in files:
            with LogContext(file=Path(path).name):
                result = self.process_file(Path(path), discovered)
            report.record(result)
            any_published = any_published or result.published

        if any_published and not self.dry_run:
            report.reinitialized = self.api.reinitialize()
            if not report.reinitialized:
                logger.warning("reinitialize_skipped_after_batch")
        return report

    @staticmethod
    def _fail(result: ComponentResult, message: str, exc: SyncError | None = None) -> ComponentResult:
        result.outcome = Outcome.FAILED
        result.error = message
        details = exc.to_dict() if exc is not None else {}
        logger.warning("definition_failed", key=result.key, error=message, **details)
        return result
