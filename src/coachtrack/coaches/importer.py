"""
Bulk coach import from spreadsheet rows.

An import runs in two phases so the operator can check school matches
before anything is written:

1. build_import_preview() turns the header row + data rows into ImportRows,
   each with its school resolved by SchoolMatcher and a confidence tier.
   The operator can then override schools (recorded as 'manual') and
   untick rows.
2. commit_import() inserts the included rows, skipping coaches that
   already exist at that school.

Reading the spreadsheet file itself happens upstream; this module only
sees lists of cells (strings, numbers or None).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from coachtrack.coaches.names import normalize_name, validate_coach_name
from coachtrack.db.models import Coach, UpdateLog
from coachtrack.db.session import commit_step, store_step
from coachtrack.errors import ValidationError
from coachtrack.schools.matching import ConfidenceTier, SchoolMatcher, SchoolSuggestion

logger = logging.getLogger(__name__)


# =============================================================================
# Column mapping
# =============================================================================

@dataclass
class ColumnMapping:
    """
    Which spreadsheet column holds which coach field.

    Either ``first_name`` + ``last_name`` or ``full_name`` (with
    ``use_full_name``) must be set, plus ``school``. Contact columns are
    optional.
    """
    school: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    use_full_name: bool = False

    def validate(self, headers: Sequence[str]) -> None:
        """
        Check the mapping is usable for these headers.

        Raises:
            ValidationError: A required column is unset or not in the headers
        """
        if not self.school:
            raise ValidationError("Please select a school column")
        if self.use_full_name:
            if not self.full_name:
                raise ValidationError("Please select a full name column")
        elif not self.first_name or not self.last_name:
            raise ValidationError(
                "Please select first name and last name columns, or switch to full name mode"
            )

        for column in self._used_columns():
            if column not in headers:
                raise ValidationError(f"Column '{column}' is not in the file")

    def _used_columns(self) -> list[str]:
        names = [self.school, self.email, self.phone, self.title]
        if self.use_full_name:
            names.append(self.full_name)
        else:
            names.extend([self.first_name, self.last_name])
        return [name for name in names if name]


def _find_header(headers: Sequence[str], predicate) -> Optional[str]:
    for header in headers:
        if predicate(header.lower()):
            return header
    return None


def guess_column_mapping(headers: Sequence[str]) -> ColumnMapping:
    """
    Pre-fill a column mapping from header names.

    Only a starting point for the operator - they confirm or change it
    before generating the preview.

    Examples:
        >>> guess_column_mapping(["School", "First Name", "Last Name"]).use_full_name
        False
        >>> guess_column_mapping(["College", "Coach"]).full_name
        'Coach'
    """
    headers = [str(h or "").strip() for h in headers]

    school = _find_header(
        headers, lambda h: "school" in h or "college" in h or "university" in h
    )
    first = _find_header(headers, lambda h: "first" in h and "name" in h)
    last = _find_header(headers, lambda h: "last" in h and "name" in h)
    full = _find_header(
        headers,
        lambda h: ("coach" in h or "name" in h) and "first" not in h and "last" not in h,
    )
    email = _find_header(headers, lambda h: "email" in h or "e-mail" in h)
    phone = _find_header(headers, lambda h: "phone" in h or "cell" in h or "mobile" in h)
    title = _find_header(headers, lambda h: "title" in h or "position" in h or "role" in h)

    return ColumnMapping(
        school=school,
        first_name=first,
        last_name=last,
        full_name=full,
        email=email,
        phone=phone,
        title=title,
        use_full_name=not (first and last) and full is not None,
    )


def split_full_name(full_name: Any) -> tuple[str, str]:
    """
    Split a full name into (first, last).

    The first token is the first name, everything after it is the last name.

    Examples:
        >>> split_full_name("Mary Ann de la Cruz")
        ('Mary', 'Ann de la Cruz')
        >>> split_full_name("Cher")
        ('Cher', '')
    """
    if not isinstance(full_name, str):
        return "", ""
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def _cell(row: Sequence[Any], headers: Sequence[str], column: Optional[str]) -> str:
    """Cell text for a mapped column; blank for unmapped columns or short rows."""
    if not column:
        return ""
    index = headers.index(column)
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


# =============================================================================
# Preview rows
# =============================================================================

@dataclass
class ImportRow:
    """One coach from the spreadsheet, as shown in the preview table."""
    original_school: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    matched_school: Any = None
    confidence: ConfidenceTier = ConfidenceTier.NONE
    include: bool = False

    @property
    def is_ready(self) -> bool:
        """Will this row be inserted on commit?"""
        return self.include and self.matched_school is not None

    def set_school(self, school: Any) -> None:
        """
        Operator override of the resolved school.

        Picking a school marks the row 'manual' and includes it; clearing
        the school marks it 'none' and excludes it.
        """
        if school is None:
            self.matched_school = None
            self.confidence = ConfidenceTier.NONE
            self.include = False
        else:
            self.matched_school = school
            self.confidence = ConfidenceTier.MANUAL
            self.include = True

    def toggle_include(self) -> bool:
        self.include = not self.include
        return self.include


@dataclass
class ImportPreview:
    """All rows of one import, before commit."""
    rows: list[ImportRow] = field(default_factory=list)
    skipped_rows: int = 0
    duplicate_rows: int = 0

    def stats(self) -> dict[str, int]:
        return {
            "total": len(self.rows),
            "matched": sum(1 for r in self.rows if r.matched_school is not None),
            "unmatched": sum(1 for r in self.rows if r.matched_school is None),
            "selected": sum(1 for r in self.rows if r.include),
        }

    def unresolved(self) -> list[ImportRow]:
        """Rows that still need the operator to pick a school."""
        return [r for r in self.rows if r.matched_school is None]

    def rematch(self, matcher: SchoolMatcher) -> None:
        """Re-resolve every row except those the operator set by hand."""
        for row in self.rows:
            if row.confidence == ConfidenceTier.MANUAL:
                continue
            _apply_match(row, matcher)

    def suggestions(self, row: ImportRow, matcher: SchoolMatcher) -> list[SchoolSuggestion]:
        return matcher.suggest(row.original_school)


def _apply_match(row: ImportRow, matcher: SchoolMatcher) -> None:
    match = matcher.resolve(row.original_school)
    if match is None:
        row.matched_school = None
        row.confidence = ConfidenceTier.NONE
        row.include = False
    else:
        row.matched_school = match.school
        row.confidence = match.confidence
        row.include = True


def build_import_preview(
    headers: Sequence[str],
    rows: Iterable[Sequence[Any]],
    mapping: ColumnMapping,
    matcher: SchoolMatcher,
) -> ImportPreview:
    """
    Build the reviewable preview for an import.

    Rows without a school, or without any name, are skipped. Rows repeating
    the same school text + first + last name (case-insensitive) are
    collapsed into the first occurrence before matching.

    Args:
        headers: Header row
        rows: Data rows (header excluded)
        mapping: Column mapping chosen by the operator
        matcher: SchoolMatcher over the current registry

    Raises:
        ValidationError: If the mapping is incomplete
    """
    headers = [str(h or "").strip() for h in headers]
    mapping.validate(headers)

    preview = ImportPreview()
    seen: set[tuple[str, str, str]] = set()

    for row in rows:
        if not any(cell not in (None, "") for cell in row):
            continue

        school_text = _cell(row, headers, mapping.school)
        if not school_text:
            preview.skipped_rows += 1
            continue

        if mapping.use_full_name:
            first, last = split_full_name(_cell(row, headers, mapping.full_name))
        else:
            first = _cell(row, headers, mapping.first_name)
            last = _cell(row, headers, mapping.last_name)

        if not first and not last:
            preview.skipped_rows += 1
            continue

        key = (normalize_name(school_text), normalize_name(first), normalize_name(last))
        if key in seen:
            preview.duplicate_rows += 1
            continue
        seen.add(key)

        import_row = ImportRow(
            original_school=school_text,
            first_name=first,
            last_name=last,
            email=_cell(row, headers, mapping.email) or None,
            phone=_cell(row, headers, mapping.phone) or None,
            title=_cell(row, headers, mapping.title) or None,
        )
        _apply_match(import_row, matcher)
        preview.rows.append(import_row)

    stats = preview.stats()
    logger.info(
        "Import preview: %d rows, %d matched, %d need a school, %d skipped, %d repeated",
        stats["total"], stats["matched"], stats["unmatched"],
        preview.skipped_rows, preview.duplicate_rows,
    )
    return preview


# =============================================================================
# Commit
# =============================================================================

@dataclass
class ImportResult:
    """Outcome of committing an import."""
    imported: int
    duplicates: int
    invalid: int = 0
    coach_ids: list[int] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.imported == 0:
            return "All coaches already exist in the database"
        noun = "coach" if self.imported == 1 else "coaches"
        return f"Successfully imported {self.imported} {noun}"


def _name_key(school_id: Any, first: str, last: str) -> tuple[Any, str, str]:
    return school_id, normalize_name(first), normalize_name(last)


def commit_import(session: Session, rows: Iterable[ImportRow]) -> ImportResult:
    """
    Insert the included, resolved rows as new coaches.

    Rows whose coach already exists at the resolved school (same first and
    last name, case-insensitive) are counted as duplicates and skipped, as
    are rows with a blank first or last name.

    Raises:
        ValidationError: No rows are selected for import
        StoreError: Looking up existing coaches failed (step "load_existing")
        ConstraintError / StoreError: The insert failed (nothing is written)
    """
    to_import = [row for row in rows if row.is_ready]
    if not to_import:
        raise ValidationError("No coaches selected for import")

    school_ids = {row.matched_school.id for row in to_import}
    with store_step(session, "load_existing"):
        existing = {
            _name_key(school_id, first, last)
            for school_id, first, last in session.query(
                Coach.school_id, Coach.first_name, Coach.last_name
            ).filter(Coach.school_id.in_(school_ids))
        }

    new_coaches: list[Coach] = []
    duplicates = 0
    invalid = 0
    for row in to_import:
        try:
            validate_coach_name(row.first_name, row.last_name)
        except ValidationError as e:
            logger.warning("Skipping import row %r: %s", row.original_school, e)
            invalid += 1
            continue

        key = _name_key(row.matched_school.id, row.first_name, row.last_name)
        if key in existing:
            duplicates += 1
            continue
        existing.add(key)

        new_coaches.append(Coach(
            school_id=row.matched_school.id,
            first_name=row.first_name.strip(),
            last_name=row.last_name.strip(),
            email=row.email or None,
            phone=row.phone or None,
            title=row.title or None,
        ))

    if not new_coaches:
        return ImportResult(imported=0, duplicates=duplicates, invalid=invalid)

    with commit_step(session, "insert_coaches"):
        session.add_all(new_coaches)
        session.flush()
        coach_ids = [coach.id for coach in new_coaches]
        session.add(UpdateLog(
            update_type="coach_import",
            details={
                "imported": len(coach_ids),
                "duplicates": duplicates,
                "invalid": invalid,
            },
            success=True,
        ))

    result = ImportResult(
        imported=len(coach_ids),
        duplicates=duplicates,
        invalid=invalid,
        coach_ids=coach_ids,
    )
    logger.info("%s (%d duplicates, %d invalid)", result.message, duplicates, invalid)
    return result
