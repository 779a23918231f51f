"""
Coach duplicate detection.

Coaches are only compared with other coaches at the same school - two
"John Smith"s at different schools are different people by definition.
Within a school every pair is classified with is_plausible_same_name() and
ranked with match_score().

Usage:
    service = CoachDuplicateService(db_session, local_suppression_store("coach"))
    scan = service.scan()
    for candidate in scan.filter("exact"):
        ...
    scan.dismiss(candidate.record_a.id, candidate.record_b.id)
"""

import logging
from typing import Any, Callable, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from coachtrack.candidates import DuplicateCandidate, DuplicateScan, dismissed_filter, scan_pairs
from coachtrack.coaches.names import is_plausible_same_name, match_score, normalize_name
from coachtrack.db.models import Attendance, Coach
from coachtrack.db.session import store_step
from coachtrack.suppression import SuppressionStore

logger = logging.getLogger(__name__)


def classify_coach_pair(a, b) -> str:
    return is_plausible_same_name(a.last_name, b.last_name, a.first_name, b.first_name).value


def find_duplicate_pairs(
    coaches: Iterable[Any],
    is_dismissed: Optional[Callable[[Any, Any], bool]] = None,
) -> list[DuplicateCandidate]:
    """
    Find likely duplicate coaches.

    Pure function over any records with ``id``, ``first_name``,
    ``last_name`` and ``school_id`` attributes. Records missing a first or
    last name are skipped.

    Args:
        coaches: Coach records, in display order
        is_dismissed: Optional callable(id_a, id_b) -> bool for suppressed pairs

    Returns:
        Candidates sorted by score, highest first
    """
    valid = []
    for coach in coaches:
        if not normalize_name(coach.first_name) or not normalize_name(coach.last_name):
            logger.warning("Skipping coach %s with a blank name", coach.id)
            continue
        valid.append(coach)

    return scan_pairs(
        valid,
        classify=classify_coach_pair,
        score=match_score,
        partition_key=lambda c: c.school_id,
        is_dismissed=is_dismissed,
    )


def attendance_counts(session: Session) -> dict[int, int]:
    """Number of attendance rows per coach id (coaches with none are absent)."""
    rows = (
        session.query(Attendance.coach_id, func.count(Attendance.id))
        .group_by(Attendance.coach_id)
        .all()
    )
    return {coach_id: int(count) for coach_id, count in rows}


class CoachDuplicateService:
    """
    Runs coach duplicate scans against the database.

    Args:
        db: SQLAlchemy session
        suppression: Operator's dismissed pairs; None disables suppression
    """

    def __init__(self, db: Session, suppression: Optional[SuppressionStore] = None):
        self.db = db
        self.suppression = suppression

    def scan(self) -> DuplicateScan:
        """
        Load every coach and return ranked candidate pairs.

        Two queries: all coaches ordered by last name, and grouped
        attendance counts. Dismissed keys are read once up front.

        Raises:
            StoreError: Either query failed (step "scan")
        """
        with store_step(self.db, "scan"):
            coaches = self.db.query(Coach).order_by(Coach.last_name, Coach.id).all()
            counts = attendance_counts(self.db)

        candidates = find_duplicate_pairs(
            coaches, is_dismissed=dismissed_filter(self.suppression)
        )
        scan = DuplicateScan(
            candidates=candidates,
            dependent_counts=counts,
            total_records=len(coaches),
            suppression=self.suppression,
        )
        logger.info(
            "Coach scan: %d coaches, %d exact and %d fuzzy candidate pairs",
            scan.total_records, scan.exact_count, scan.fuzzy_count,
        )
        return scan
