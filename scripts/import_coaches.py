#!/usr/bin/env python3
"""
Import coaches from a CSV staff list.

Shows a preview of every row with the school it resolved to, then inserts
the selected rows when --commit is given. Rows that did not resolve can be
pointed at a school by hand with --set-school ROW=SCHOOL_ID.

Usage:
  python scripts/import_coaches.py coaches.csv
  python scripts/import_coaches.py coaches.csv --name-column "Coach"
  python scripts/import_coaches.py coaches.csv --set-school 4=17 --skip 9 --commit
"""

import argparse
import csv
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from coachtrack.coaches.importer import build_import_preview, commit_import, guess_column_mapping
from coachtrack.config import settings
from coachtrack.db.models import School
from coachtrack.db.session import get_session, store_step
from coachtrack.errors import CoachTrackError
from coachtrack.schools.matching import SchoolMatcher

logging.basicConfig(level=settings.log_level, format=settings.log_format)
logger = logging.getLogger(__name__)


def _parse_override(value: str) -> tuple[int, int]:
    try:
        row, school_id = value.split("=", 1)
        return int(row), int(school_id)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected ROW=SCHOOL_ID, got {value!r}")


def _read_csv(path: Path) -> tuple[list[str], list[list[str]]]:
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.reader(f)
        rows = list(reader)
    if not rows:
        return [], []
    return rows[0], rows[1:]


def main() -> int:
    parser = argparse.ArgumentParser(description="Import coaches from a CSV file")
    parser.add_argument("csv_path", type=Path, help="CSV file with a header row")
    parser.add_argument("--school-column", help="Header of the school column")
    parser.add_argument("--first-column", help="Header of the first name column")
    parser.add_argument("--last-column", help="Header of the last name column")
    parser.add_argument(
        "--name-column",
        help="Header of a full name column (split into first and last)",
    )
    parser.add_argument(
        "--set-school",
        type=_parse_override,
        action="append",
        default=[],
        metavar="ROW=SCHOOL_ID",
        help="Resolve preview row ROW to school SCHOOL_ID (repeatable)",
    )
    parser.add_argument(
        "--skip",
        type=int,
        action="append",
        default=[],
        metavar="ROW",
        help="Leave preview row ROW out of the import (repeatable)",
    )
    parser.add_argument("--commit", action="store_true", help="Insert the selected rows")
    args = parser.parse_args()

    headers, rows = _read_csv(args.csv_path)
    if not headers:
        print(f"{args.csv_path} is empty.")
        return 1

    mapping = guess_column_mapping(headers)
    if args.school_column:
        mapping.school = args.school_column
    if args.first_column:
        mapping.first_name = args.first_column
    if args.last_column:
        mapping.last_name = args.last_column
    if args.name_column:
        mapping.full_name = args.name_column
        mapping.use_full_name = True

    with get_session() as session:
        try:
            with store_step(session, "load_schools"):
                schools = session.query(School).order_by(School.school).all()
        except CoachTrackError as e:
            print(f"Cannot load schools: {e}")
            return 1
        schools_by_id = {school.id: school for school in schools}
        matcher = SchoolMatcher(schools)

        try:
            preview = build_import_preview(headers, rows, mapping, matcher)
        except CoachTrackError as e:
            print(f"Cannot read {args.csv_path}: {e}")
            return 1

        for row_number, school_id in args.set_school:
            if not 1 <= row_number <= len(preview.rows):
                print(f"No preview row {row_number}")
                return 1
            if school_id not in schools_by_id:
                print(f"No school with id {school_id}")
                return 1
            preview.rows[row_number - 1].set_school(schools_by_id[school_id])

        for row_number in args.skip:
            if 1 <= row_number <= len(preview.rows):
                preview.rows[row_number - 1].include = False

        for number, row in enumerate(preview.rows, start=1):
            mark = "x" if row.include else " "
            school = row.matched_school.school if row.matched_school else "-"
            print(
                f"[{mark}] {number:>4}  {row.first_name} {row.last_name:<20} "
                f"{row.original_school!r:<40} -> {school} ({row.confidence.value})"
            )
            if row.matched_school is None:
                for suggestion in preview.suggestions(row, matcher):
                    print(
                        f"            maybe {suggestion.school.id}:{suggestion.school.school} "
                        f"({suggestion.score})"
                    )

        stats = preview.stats()
        print(
            f"\n{stats['total']} rows: {stats['matched']} matched, "
            f"{stats['unmatched']} unmatched, {stats['selected']} selected"
        )
        if preview.skipped_rows or preview.duplicate_rows:
            print(
                f"Ignored {preview.skipped_rows} rows missing a school or name "
                f"and {preview.duplicate_rows} repeated rows."
            )

        if not args.commit:
            print("\nPreview only. Re-run with --commit to import the selected rows.")
            return 0

        try:
            result = commit_import(session, preview.rows)
        except CoachTrackError as e:
            logger.error("Import failed: %s", e)
            print(f"\nImport failed: {e}")
            return 1

        print(f"\n{result.message}")
        if result.duplicates:
            print(f"Skipped {result.duplicates} coaches that already exist.")
        if result.invalid:
            print(f"Skipped {result.invalid} rows with a blank first or last name.")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
