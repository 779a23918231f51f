"""
School merge transaction.

Same shape as the coach merge: fill in the keeper's missing metadata, move
the duplicate school's coaches over, then delete the duplicate. Each step
commits before the next one starts.

Moving coaches can leave two records for one coach at the kept school;
the next coach scan picks those up as exact duplicates.
"""

import logging

from sqlalchemy.orm import Session

from coachtrack.db.models import Coach, School, UpdateLog
from coachtrack.db.session import commit_step, store_step
from coachtrack.errors import NotFoundError, ValidationError
from coachtrack.merging import MergeResult, plan_empty_field_fill

logger = logging.getLogger(__name__)

SCHOOL_FIELDS = ("city", "state", "division", "conference")


class SchoolMergeService:
    """Merges duplicate school records."""

    def __init__(self, db: Session):
        self.db = db

    def merge(self, keep_id: int, merge_id: int) -> MergeResult:
        """
        Merge school ``merge_id`` into school ``keep_id``.

        Raises:
            ValidationError: Same school twice
            NotFoundError: Either school no longer exists
            ConstraintError / StoreError: Loading or a step failed in the store
        """
        if keep_id == merge_id:
            raise ValidationError("Cannot merge a school into itself")

        with store_step(self.db, "load"):
            keeper = self.db.query(School).filter(School.id == keep_id).first()
            loser = self.db.query(School).filter(School.id == merge_id).first()
        if keeper is None:
            raise NotFoundError(f"School {keep_id} not found", step="load")
        if loser is None:
            raise NotFoundError(
                f"School {merge_id} not found - this pair was already resolved",
                step="load",
            )

        loser_name = loser.school

        updates = plan_empty_field_fill(keeper, loser, SCHOOL_FIELDS)
        if updates:
            with commit_step(self.db, "reconcile_fields"):
                for field_name, value in updates.items():
                    setattr(keeper, field_name, value)

        with commit_step(self.db, "reassign_coaches"):
            moved = (
                self.db.query(Coach)
                .filter(Coach.school_id == merge_id)
                .update({Coach.school_id: keep_id}, synchronize_session=False)
            )

        result = MergeResult(
            keeper_id=keep_id,
            loser_id=merge_id,
            keeper_name=keeper.school,
            loser_name=loser_name,
            merged_fields=list(updates),
            moved=moved,
            dependent_label="coach",
        )

        with commit_step(self.db, "delete_loser"):
            deleted = (
                self.db.query(School)
                .filter(School.id == merge_id)
                .delete(synchronize_session=False)
            )
            if not deleted:
                raise NotFoundError(
                    f"School {merge_id} was already deleted - this pair was already resolved",
                    step="delete_loser",
                )
            self.db.add(UpdateLog(
                update_type="school_merge",
                details=result.to_dict(),
                success=True,
            ))

        logger.info("%s", result.summary)
        return result


def pick_school_keeper(a, b, counts: dict[int, int]):
    """
    Choose which of two duplicate schools to keep for automatic merges.

    Prefers the school with more coaches, then the older (lower) id.

    Returns:
        (keeper, loser)
    """
    if (counts.get(a.id, 0), -a.id) >= (counts.get(b.id, 0), -b.id):
        return a, b
    return b, a
