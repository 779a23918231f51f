"""
School registry matching, dedup and merging.

Key components:
- SchoolMatcher: Resolves free-text school names from imports
- SchoolDuplicateService: Finds duplicate schools across the registry
- SchoolMergeService: Folds a duplicate school and its coaches into the keeper
"""

from coachtrack.schools.matching import ConfidenceTier, SchoolMatch, SchoolMatcher
from coachtrack.schools.duplicates import SchoolDuplicateService, normalize_school_name
from coachtrack.schools.merge import SchoolMergeService, pick_school_keeper

__all__ = [
    "ConfidenceTier",
    "SchoolMatch",
    "SchoolMatcher",
    "SchoolDuplicateService",
    "normalize_school_name",
    "SchoolMergeService",
    "pick_school_keeper",
]
