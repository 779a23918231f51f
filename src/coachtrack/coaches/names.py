"""
Coach name normalization, scoring and variant detection.

Coach names arrive from manual entry, spreadsheet imports and parents
logging coaches from the sideline, so the same person shows up as:
- "John Smith"
- "J. Smith" / "J Smith"
- "Johnny Smith"
- "Jon Smtih" (typos)

This module provides the two building blocks of coach duplicate detection:
a small additive match score used to rank candidate pairs, and a
classifier that decides whether two names are plausibly the same person.
Both only ever compare coaches at the same school, so they can afford to
be generous with first names as long as the last names agree.
"""

import logging
import re
from enum import Enum

import jellyfish

from coachtrack.config import settings
from coachtrack.errors import ValidationError

logger = logging.getLogger(__name__)

_PUNCTUATION_RE = re.compile(r"[^\w\s]")

# Canonical first name -> common nicknames / short forms.
# Lookups treat every group as a set: "bill" and "billy" are variants of
# each other just as "bill" and "william" are.
NICKNAMES: dict[str, list[str]] = {
    "william": ["will", "bill", "billy", "willy"],
    "robert": ["rob", "bob", "bobby", "robbie"],
    "richard": ["rich", "rick", "dick", "ricky"],
    "james": ["jim", "jimmy", "jamie"],
    "john": ["jack", "johnny", "jon"],
    "michael": ["mike", "mikey", "mick"],
    "david": ["dave", "davey"],
    "joseph": ["joe", "joey"],
    "thomas": ["tom", "tommy"],
    "christopher": ["chris", "topher"],
    "daniel": ["dan", "danny"],
    "matthew": ["matt", "matty"],
    "anthony": ["tony", "ant"],
    "steven": ["steve", "stevie"],
    "stephen": ["steve", "stevie"],
    "edward": ["ed", "eddie", "ted", "teddy"],
    "charles": ["charlie", "chuck"],
    "jennifer": ["jen", "jenny"],
    "elizabeth": ["liz", "beth", "lizzy", "betty"],
    "katherine": ["kate", "katie", "kathy", "kat"],
    "catherine": ["kate", "katie", "cathy", "cat"],
    "margaret": ["maggie", "meg", "peggy"],
    "patricia": ["pat", "patty", "trish"],
    "jessica": ["jess", "jessie"],
    "ashley": ["ash"],
    "samantha": ["sam", "sammy"],
    "amanda": ["mandy", "amy"],
    "rebecca": ["becca", "becky"],
    "christina": ["chris", "tina", "christy"],
    "christine": ["chris", "tina", "christy"],
}


def _build_nickname_index(table: dict[str, list[str]]) -> dict[str, frozenset[str]]:
    """Map every name in the table to the canonical names of the groups it belongs to."""
    index: dict[str, set[str]] = {}
    for canonical, variants in table.items():
        for name in [canonical, *variants]:
            index.setdefault(name, set()).add(canonical)
    return {name: frozenset(groups) for name, groups in index.items()}


_NICKNAME_GROUPS = _build_nickname_index(NICKNAMES)


class MatchType(str, Enum):
    """How confidently two coach records look like the same person."""
    EXACT = "exact"
    FUZZY = "fuzzy"
    NONE = "none"


def normalize_name(name: str | None) -> str:
    """
    Normalize a single name part for comparison.

    Lowercases, trims and collapses internal whitespace.

    Examples:
        >>> normalize_name("  McDonald ")
        'mcdonald'
        >>> normalize_name("Mary  Ann")
        'mary ann'
    """
    if not name:
        return ""
    return " ".join(name.lower().split())


def validate_coach_name(first_name: str | None, last_name: str | None) -> None:
    """
    Reject a coach whose first or last name is blank.

    Raises:
        ValidationError: If either name is empty after trimming
    """
    if not normalize_name(first_name):
        raise ValidationError("First name is required")
    if not normalize_name(last_name):
        raise ValidationError("Last name is required")


def edit_distance(a: str | None, b: str | None) -> int:
    """
    Levenshtein distance between two names.

    Insertions, deletions and substitutions each cost 1. Inputs are
    normalized first and capped at ``settings.max_compare_length``
    characters so a garbage cell can't blow up the comparison.

    Examples:
        >>> edit_distance("Jon", "john")
        1
        >>> edit_distance("", "smith")
        5
    """
    limit = settings.max_compare_length
    n1 = normalize_name(a)[:limit]
    n2 = normalize_name(b)[:limit]
    return jellyfish.levenshtein_distance(n1, n2)


def match_score(a, b) -> int:
    """
    Additive confidence score for a pair of coach records.

    Larger means more confident. Only meaningful for ranking candidate pairs
    against each other - it is not a distance and is not normalized.

    Points:
    - +50 first names equal, +50 last names equal
    - +30 first names one edit apart, +30 last names one edit apart
    - +10 first names start with the same letter

    Args:
        a: Record with ``first_name`` and ``last_name`` attributes
        b: Record with ``first_name`` and ``last_name`` attributes
    """
    first1, first2 = normalize_name(a.first_name), normalize_name(b.first_name)
    last1, last2 = normalize_name(a.last_name), normalize_name(b.last_name)

    score = 0
    if first1 == first2:
        score += 50
    if last1 == last2:
        score += 50

    if edit_distance(first1, first2) == 1:
        score += 30
    if edit_distance(last1, last2) == 1:
        score += 30

    if first1 and first2 and first1[0] == first2[0]:
        score += 10

    return score


def are_nicknames(name1: str, name2: str) -> bool:
    """
    Check whether two first names are known variants of one canonical name.

    Symmetric and case-insensitive: ("Bill", "william") and ("william",
    "Bill") give the same answer, as do two nicknames of the same name.
    """
    groups1 = _NICKNAME_GROUPS.get(normalize_name(name1))
    groups2 = _NICKNAME_GROUPS.get(normalize_name(name2))
    if not groups1 or not groups2:
        return False
    return not groups1.isdisjoint(groups2)


def _strip_punctuation(name: str) -> str:
    return _PUNCTUATION_RE.sub("", name)


def _is_initial_of(short: str, full: str) -> bool:
    """True if ``short`` is just the first letter of ``full`` (with or without a period)."""
    if len(short) == 1 and short[0] == full[0]:
        return True
    return _strip_punctuation(short) == full[0]


def is_plausible_same_name(
    last_a: str | None,
    last_b: str | None,
    first_a: str | None,
    first_b: str | None,
) -> MatchType:
    """
    Decide whether two coach names plausibly belong to the same person.

    The last name gates everything: it must be equal or one edit apart.
    Given that, first names are accepted as a fuzzy match when they are an
    initial of each other ("J" / "J." vs "John"), within two edits
    ("Jon" vs "John"), or known nicknames ("Bill" vs "William").

    Never raises; blank names simply don't match.

    Returns:
        MatchType.EXACT, MatchType.FUZZY or MatchType.NONE

    Examples:
        >>> is_plausible_same_name("Smith", "smith", "John", "john")
        <MatchType.EXACT: 'exact'>
        >>> is_plausible_same_name("Smith", "Smith", "J.", "John")
        <MatchType.FUZZY: 'fuzzy'>
        >>> is_plausible_same_name("Doe", "Doe", "John", "Jane")
        <MatchType.NONE: 'none'>
    """
    first1, first2 = normalize_name(first_a), normalize_name(first_b)
    last1, last2 = normalize_name(last_a), normalize_name(last_b)

    if not (first1 and first2 and last1 and last2):
        return MatchType.NONE

    if first1 == first2 and last1 == last2:
        return MatchType.EXACT

    if last1 != last2 and edit_distance(last1, last2) > 1:
        return MatchType.NONE

    if (
        _is_initial_of(first1, first2)
        or _is_initial_of(first2, first1)
        or edit_distance(first1, first2) <= 2
        or are_nicknames(first1, first2)
    ):
        return MatchType.FUZZY

    return MatchType.NONE
