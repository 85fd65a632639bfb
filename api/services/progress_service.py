"""
Durable mirror of a student's completed-id set.

The student's local store is the authority; this table lets progress follow a student
across devices. Each save replaces the whole set, keyed by (bot, student): concurrent
writers converge to the last write.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from api.models.models import StudentProgress
from api.utils.common import is_valid_session_id
from api.utils.errors import InvalidInput, PersistenceFailure
from api.utils.logger import configure_logging

logger = configure_logging()


def require_student_id(student_id: Optional[str]) -> str:
    if not is_valid_session_id(student_id):
        raise InvalidInput("Valid studentId is required")
    return student_id


class ProgressService:
    def __init__(self, db: DBSession):
        self.db = db

    def _find(self, bot_id: str, student_id: str) -> Optional[StudentProgress]:
        return (
            self.db.query(StudentProgress)
            .filter(StudentProgress.bot_id == bot_id, StudentProgress.session_id == student_id)
            .first()
        )

    def get_completed_ids(self, bot_id: str, student_id: Optional[str]) -> list[str]:
        """Stored set for the student, or an empty list when nothing was saved yet."""
        student_id = require_student_id(student_id)
        row = self._find(bot_id, student_id)
        if row is None or not isinstance(row.completed_module_ids, list):
            return []
        return [str(i) for i in row.completed_module_ids]

    def save_completed_ids(self, bot_id: str, student_id: Optional[str], completed_ids: Any) -> list[str]:
        student_id = require_student_id(student_id)
        if not isinstance(completed_ids, list):
            raise InvalidInput("completedIds must be an array")
        ids = [str(i) for i in completed_ids]
        try:
            self._upsert(bot_id, student_id, ids)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("progress save failed bot_id=%s: %s", bot_id, e)
            raise PersistenceFailure("Failed to save progress") from e
        logger.info("progress saved bot_id=%s count=%s", bot_id, len(ids))
        return ids

    def _upsert(self, bot_id: str, student_id: str, ids: list[str]) -> None:
        row = self._find(bot_id, student_id)
        if row is None:
            self.db.add(
                StudentProgress(
                    bot_id=bot_id,
                    session_id=student_id,
                    completed_module_ids=ids,
                    updated_at=datetime.utcnow(),
                )
            )
            try:
                self.db.commit()
                return
            except IntegrityError:
                # Another writer inserted the row first; overwrite it below.
                self.db.rollback()
                row = self._find(bot_id, student_id)
                if row is None:
                    raise
        row.completed_module_ids = ids
        row.updated_at = datetime.utcnow()
        self.db.commit()
