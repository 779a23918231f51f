"""
Pieces shared by coach and school merges.

A merge keeps one record (the keeper), folds the duplicate (the loser) into
it and deletes the loser. Field reconciliation never overwrites: a field is
only copied when the keeper has nothing there.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable


def is_blank(value: Any) -> bool:
    """None, empty and whitespace-only strings count as blank."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def plan_empty_field_fill(keeper: Any, loser: Any, fields: Iterable[str]) -> dict[str, Any]:
    """
    Values to copy from loser to keeper for fields the keeper is missing.

    Examples:
        keeper.email = None, loser.email = "j@x.edu"  ->  {"email": "j@x.edu"}
        keeper.email = "a@x.edu", loser.email = "b@x.edu"  ->  {}
    """
    updates: dict[str, Any] = {}
    for name in fields:
        keep_value = getattr(keeper, name, None)
        lose_value = getattr(loser, name, None)
        if is_blank(keep_value) and not is_blank(lose_value):
            updates[name] = lose_value
    return updates


@dataclass
class MergeResult:
    """Outcome of a completed merge, for operator feedback."""
    keeper_id: Any
    loser_id: Any
    keeper_name: str
    loser_name: str
    merged_fields: list[str] = field(default_factory=list)
    moved: int = 0
    dropped: int = 0
    dependent_label: str = "attendance record"

    def _plural(self, count: int) -> str:
        label = self.dependent_label
        if count == 1:
            return f"{count} {label}"
        suffix = "es" if label.endswith(("ch", "sh", "s", "x")) else "s"
        return f"{count} {label}{suffix}"

    @property
    def summary(self) -> str:
        """
        Human-readable description of what the merge did.

        Example:
            Merged "John Smith" into "John Smith" (3 attendance records
            reassigned, 1 duplicate dropped); added email, first_name
        """
        message = f'Merged "{self.loser_name}" into "{self.keeper_name}"'

        details = []
        if self.moved:
            details.append(f"{self._plural(self.moved)} reassigned")
        if self.dropped:
            noun = "duplicate" if self.dropped == 1 else "duplicates"
            details.append(f"{self.dropped} {noun} dropped")
        if details:
            message += f" ({', '.join(details)})"

        if self.merged_fields:
            message += f"; added {', '.join(self.merged_fields)}"
        return message

    def to_dict(self) -> dict[str, Any]:
        return {
            "keeper_id": self.keeper_id,
            "loser_id": self.loser_id,
            "keeper_name": self.keeper_name,
            "loser_name": self.loser_name,
            "merged_fields": list(self.merged_fields),
            "moved": self.moved,
            "dropped": self.dropped,
        }
