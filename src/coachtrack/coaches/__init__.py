"""
Coach record-linkage module.

Coaches get entered more than once: parents log them from the sideline,
imports bring in staff lists, and nobody spells a name the same way twice.
This module finds those duplicates and folds them back together.

Key components:
- is_plausible_same_name / match_score: Name classification and ranking
- CoachDuplicateService: Scans one school at a time for candidate pairs
- CoachMergeService: Three-step merge (fields, attendance, delete)
- build_import_preview / commit_import: Spreadsheet import with school resolution

The classification (in priority order):
1. exact - first and last names equal after normalization
2. fuzzy - last names within one edit, first names an initial, a typo or a nickname
3. none - anything else
"""

from coachtrack.coaches.names import MatchType, is_plausible_same_name, match_score
from coachtrack.coaches.duplicates import CoachDuplicateService, find_duplicate_pairs
from coachtrack.coaches.merge import CoachMergeService, pick_keeper

__all__ = [
    "MatchType",
    "is_plausible_same_name",
    "match_score",
    "CoachDuplicateService",
    "find_duplicate_pairs",
    "CoachMergeService",
    "pick_keeper",
]
