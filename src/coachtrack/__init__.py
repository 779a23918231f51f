"""
coachtrack - Recruiting visit attendance tracker

Record-linkage and merge engine for the coaches and schools that parents
and players log at club events.

Main components:
- coaches: Coach name matching, duplicate detection, merging and bulk import
- schools: School name resolution for imports, school dedup and merging
- suppression: Operator's persisted list of "not a duplicate" pairs
- db: SQLAlchemy models and session management
"""

__version__ = "1.0.0"
