#!/usr/bin/env python3
"""
Find and optionally merge likely duplicate coaches or schools.

Usage:
  python scripts/find_and_merge_duplicates.py
  python scripts/find_and_merge_duplicates.py --exact-only
  python scripts/find_and_merge_duplicates.py --execute
  python scripts/find_and_merge_duplicates.py --kind school
  python scripts/find_and_merge_duplicates.py --dismiss 12 7
  python scripts/find_and_merge_duplicates.py --clear-dismissed
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from coachtrack.coaches.duplicates import CoachDuplicateService
from coachtrack.coaches.merge import CoachMergeService, pick_keeper
from coachtrack.config import settings
from coachtrack.db.session import get_session
from coachtrack.errors import CoachTrackError, NotFoundError
from coachtrack.schools.duplicates import SchoolDuplicateService
from coachtrack.schools.merge import SchoolMergeService, pick_school_keeper
from coachtrack.suppression import local_suppression_store

logging.basicConfig(level=settings.log_level, format=settings.log_format)
logger = logging.getLogger(__name__)


def _label(kind: str, record) -> str:
    if kind == "coach":
        return f"{record.id}:{record.full_name} (school {record.school_id})"
    state = f", {record.state}" if record.state else ""
    return f"{record.id}:{record.school}{state}"


def _plan_merges(kind: str, candidates, counts: dict[int, int]) -> list[tuple[int, int, str]]:
    """
    Pick (keep_id, merge_id, description) for each exact pair up front.

    Pairs touching a record that an earlier pair already merges away are
    skipped; the next scan will pick them up again if still relevant.
    """
    picker = pick_keeper if kind == "coach" else pick_school_keeper
    planned: list[tuple[int, int, str]] = []
    merged_ids: set[int] = set()
    for candidate in candidates:
        a, b = candidate.record_a, candidate.record_b
        if a.id in merged_ids or b.id in merged_ids:
            continue
        keeper, loser = picker(a, b, counts)
        planned.append((keeper.id, loser.id, f"{_label(kind, loser)} -> {_label(kind, keeper)}"))
        merged_ids.add(loser.id)
    return planned


def main() -> int:
    parser = argparse.ArgumentParser(description="Find and merge duplicate coaches or schools")
    parser.add_argument(
        "--kind",
        choices=["coach", "school"],
        default="coach",
        help="Record type to scan (default: coach)",
    )
    parser.add_argument(
        "--exact-only",
        action="store_true",
        help="Only list exact-name pairs",
    )
    parser.add_argument(
        "--execute",
        action="store_true",
        help="Merge exact-name pairs (fuzzy pairs always need a manual decision)",
    )
    parser.add_argument(
        "--dismiss",
        nargs=2,
        type=int,
        metavar=("ID_A", "ID_B"),
        help="Mark a pair as not a duplicate so it is never proposed again",
    )
    parser.add_argument(
        "--clear-dismissed",
        action="store_true",
        help="Forget every dismissed pair for this record type",
    )
    parser.add_argument(
        "--suppression-path",
        default=None,
        help=f"Dismissed pairs file (default: {settings.suppression_path})",
    )
    args = parser.parse_args()

    suppression = local_suppression_store(args.kind, path=args.suppression_path)

    if args.clear_dismissed:
        cleared = suppression.clear_all()
        print(f"Cleared {cleared} dismissed {args.kind} pairs.")
        return 0

    if args.dismiss:
        key = suppression.dismiss(*args.dismiss)
        print(f"Dismissed {args.kind} pair {key}.")
        return 0

    with get_session() as session:
        if args.kind == "coach":
            scan_service = CoachDuplicateService(session, suppression)
            merge_service = CoachMergeService(session)
            count_label = "attendance"
        else:
            scan_service = SchoolDuplicateService(session, suppression)
            merge_service = SchoolMergeService(session)
            count_label = "coaches"

        try:
            scan = scan_service.scan()
        except CoachTrackError as e:
            print(f"Duplicate scan failed: {e}")
            return 1

        candidates = scan.filter("exact" if args.exact_only else "all")
        if not candidates:
            print(f"No duplicate {args.kind} candidates found ({scan.total_records} records scanned).")
            return 0

        print(
            f"Found {len(candidates)} duplicate {args.kind} candidate pairs "
            f"({scan.exact_count} exact, {scan.fuzzy_count} fuzzy):"
        )
        for candidate in candidates:
            a, b = candidate.record_a, candidate.record_b
            print(
                f"- {_label(args.kind, a)} <-> {_label(args.kind, b)} "
                f"[{candidate.match_type}, score={candidate.score}] "
                f"{count_label}=({scan.count_for(a.id)},{scan.count_for(b.id)})"
            )

        if not args.execute:
            print(
                "\nDry run complete. Re-run with --execute to merge exact pairs, "
                "or --dismiss ID_A ID_B to hide a pair."
            )
            return 0

        planned = _plan_merges(args.kind, scan.filter("exact"), scan.dependent_counts)
        if not planned:
            print("\nNo exact pairs to merge.")
            return 0

        merge_count = 0
        for keep_id, merge_id, description in planned:
            try:
                result = merge_service.merge(keep_id, merge_id)
            except NotFoundError as e:
                print(f"Skipped {description}: {e}")
                continue
            except CoachTrackError as e:
                logger.error("Merge %s failed: %s", description, e)
                print(f"\nStopped after {merge_count} merges: {e}")
                return 1
            merge_count += 1
            print(result.summary)

        print(f"\nCompleted {merge_count} merges.")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
