from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timetabler.core.config import Settings, get_settings
from timetabler.core.exceptions import AppError, NoSelectionError, StorageError
from timetabler.core.results import OperationResult
from timetabler.schemas.bulk import BulkFailure, BulkOperation, BulkResult
from timetabler.schemas.timetable import EntryView
from timetabler.services.query_service import QueryService
from timetabler.services.timetable_service import TimetableService

logger = logging.getLogger(__name__)


def _failure(entry_id: str, error: AppError) -> BulkFailure:
    return BulkFailure(entry_id=entry_id, error_type=type(error).__name__, message=error.message)


class BulkOperator:
    """Applies one operation to many entries, item by item.

    Each item runs in its own transaction through the lifecycle manager, so one
    failing id never aborts the rest and the report reflects exactly what completed.
    """

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.timetable = TimetableService(db, self.settings)
        self.queries = QueryService(db, self.settings)

    def bulk_apply(
        self,
        ids: Iterable[str],
        operation: BulkOperation,
        actor_id: str | None = None,
    ) -> OperationResult[BulkResult]:
        selected = list(dict.fromkeys(str(item) for item in ids if str(item).strip()))
        if not selected:
            return OperationResult.failure(NoSelectionError())

        result = BulkResult(operation=operation)
        for entry_id in selected:
            try:
                if operation == BulkOperation.hard_delete:
                    outcome = self.timetable.delete_entry(entry_id, actor_id=actor_id)
                    if not outcome.ok:
                        result.failed.append(_failure(entry_id, outcome.error))
                        continue
                else:
                    result.exported.append(self._export(entry_id))
            except AppError as exc:
                result.failed.append(_failure(entry_id, exc))
                continue
            result.succeeded.append(entry_id)

        logger.info("Bulk %s by %s: %s", operation.value, actor_id, result.summary)
        return OperationResult.success(result)

    def _export(self, entry_id: str) -> EntryView:
        try:
            return self.queries.get_entry(entry_id)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Bulk export of timetable entry %s failed in storage", entry_id)
            raise StorageError("Timetable export failed") from exc

    def bulk_delete(self, ids: Iterable[str], actor_id: str | None = None) -> OperationResult[BulkResult]:
        return self.bulk_apply(ids, BulkOperation.hard_delete, actor_id=actor_id)

    def bulk_export(self, ids: Iterable[str]) -> OperationResult[BulkResult]:
        return self.bulk_apply(ids, BulkOperation.export)
