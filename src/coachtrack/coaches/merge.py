"""
Coach merge transaction.

Folds a duplicate coach (the loser) into the record being kept (the keeper)
in three committed steps, always in this order:

1. reconcile_fields - copy email/phone/title the keeper is missing, and
   replace an initial-only first name ("J.") with the loser's full one
2. repoint_attendance - move the loser's attendance rows to the keeper
3. delete_loser - delete the loser and write the audit row

The order bounds the damage of a failure: contact data is on the keeper
before any attendance moves, and attendance is on the keeper before the
loser disappears. A failed step is rolled back and raised with its name;
earlier steps stay committed and nothing is retried.

Usage:
    service = CoachMergeService(db_session)
    result = service.merge(keep_id=12, merge_id=7)
    print(result.summary)
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from coachtrack.config import settings
from coachtrack.db.models import Attendance, Coach, UpdateLog
from coachtrack.db.session import commit_step, store_step
from coachtrack.errors import NotFoundError, ValidationError
from coachtrack.merging import MergeResult, is_blank, plan_empty_field_fill

logger = logging.getLogger(__name__)

# A keeper first name this short or shorter is treated as an initial and
# replaced by a longer first name from the loser. Overridable through
# settings.coach_initial_max_length or the service constructor.
DEFAULT_INITIAL_MAX_LENGTH = 2

CONTACT_FIELDS = ("email", "phone", "title")


def plan_field_merge(
    keeper: Any,
    loser: Any,
    initial_max_length: int = DEFAULT_INITIAL_MAX_LENGTH,
) -> dict[str, Any]:
    """
    Field updates to stage onto the keeper.

    Args:
        keeper: Coach being kept
        loser: Coach being merged away
        initial_max_length: Keeper first names up to this length count as initials

    Returns:
        Mapping of field name -> new value (empty if nothing to do)

    Examples:
        keeper "J." Smith (no email), loser "John" Smith (j@x.edu)
        -> {"email": "j@x.edu", "first_name": "John"}
    """
    updates = plan_empty_field_fill(keeper, loser, CONTACT_FIELDS)

    keep_first = (keeper.first_name or "").strip()
    lose_first = (loser.first_name or "").strip()
    if len(keep_first) <= initial_max_length and len(lose_first) > len(keep_first):
        updates["first_name"] = lose_first

    return updates


class CoachMergeService:
    """
    Merges duplicate coach records.

    Args:
        db: SQLAlchemy session; every step commits through it
        initial_max_length: Override for the initial-name policy
    """

    def __init__(self, db: Session, initial_max_length: Optional[int] = None):
        self.db = db
        if initial_max_length is None:
            initial_max_length = settings.coach_initial_max_length
        self.initial_max_length = initial_max_length

    def merge(self, keep_id: int, merge_id: int) -> MergeResult:
        """
        Merge coach ``merge_id`` into coach ``keep_id``.

        Args:
            keep_id: Coach to keep
            merge_id: Coach to merge (will be deleted)

        Returns:
            MergeResult with a summary for the operator

        Raises:
            ValidationError: Same coach twice, or coaches at different schools
            NotFoundError: Either coach no longer exists (e.g. already merged)
            ConstraintError: A step violated a store constraint
            StoreError: Loading the coaches or a step failed in the store
        """
        if keep_id == merge_id:
            raise ValidationError("Cannot merge a coach into itself")

        with store_step(self.db, "load"):
            keeper = self._get_coach(keep_id)
            loser = self._get_coach(merge_id)
        if keeper is None:
            raise NotFoundError(f"Coach {keep_id} not found", step="load")
        if loser is None:
            raise NotFoundError(
                f"Coach {merge_id} not found - this pair was already resolved",
                step="load",
            )
        if keeper.school_id != loser.school_id:
            raise ValidationError(
                f"Coaches {keep_id} and {merge_id} belong to different schools"
            )

        loser_name = loser.full_name

        # Step 1: fill in what the keeper is missing
        updates = plan_field_merge(keeper, loser, self.initial_max_length)
        if updates:
            with commit_step(self.db, "reconcile_fields"):
                for field_name, value in updates.items():
                    setattr(keeper, field_name, value)

        # Step 2: move attendance, dropping games the keeper already has
        with commit_step(self.db, "repoint_attendance"):
            moved, dropped = self._repoint_attendance(keep_id, merge_id)

        result = MergeResult(
            keeper_id=keep_id,
            loser_id=merge_id,
            keeper_name=keeper.full_name,
            loser_name=loser_name,
            merged_fields=list(updates),
            moved=moved,
            dropped=dropped,
        )

        # Step 3: delete the loser and record the merge
        with commit_step(self.db, "delete_loser"):
            deleted = (
                self.db.query(Coach)
                .filter(Coach.id == merge_id)
                .delete(synchronize_session=False)
            )
            if not deleted:
                raise NotFoundError(
                    f"Coach {merge_id} was already deleted - this pair was already resolved",
                    step="delete_loser",
                )
            self.db.add(UpdateLog(
                update_type="coach_merge",
                details=result.to_dict(),
                success=True,
            ))

        logger.info("%s", result.summary)
        return result

    def _get_coach(self, coach_id: int) -> Optional[Coach]:
        # Always hits the database so a concurrent delete is seen
        return self.db.query(Coach).filter(Coach.id == coach_id).first()

    def _repoint_attendance(self, keep_id: int, merge_id: int) -> tuple[int, int]:
        """
        Reassign the loser's attendance rows to the keeper.

        Rows for games the keeper already attended are deleted first so the
        (game, coach) uniqueness constraint holds.

        Returns:
            (rows moved, duplicate rows dropped)
        """
        keeper_games = [
            game_id for (game_id,) in
            self.db.query(Attendance.game_id).filter(Attendance.coach_id == keep_id)
        ]

        dropped = 0
        if keeper_games:
            dropped = (
                self.db.query(Attendance)
                .filter(
                    Attendance.coach_id == merge_id,
                    Attendance.game_id.in_(keeper_games),
                )
                .delete(synchronize_session=False)
            )

        moved = (
            self.db.query(Attendance)
            .filter(Attendance.coach_id == merge_id)
            .update({Attendance.coach_id: keep_id}, synchronize_session=False)
        )
        return moved, dropped


def pick_keeper(a: Any, b: Any, counts: dict[Any, int]) -> tuple[Any, Any]:
    """
    Choose which of two duplicate coaches to keep for automatic merges.

    Prefers the record with more attendance, then more filled-in contact
    fields, then the longer first name, then the older (lower) id.

    Returns:
        (keeper, loser)
    """
    def strength(coach):
        filled = sum(1 for name in CONTACT_FIELDS if not is_blank(getattr(coach, name, None)))
        return (counts.get(coach.id, 0), filled, len((coach.first_name or "").strip()), -coach.id)

    if strength(a) >= strength(b):
        return a, b
    return b, a
