"""Engine configuration and coverage target definitions."""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from .shift import DAY_END, MIDDAY, AssignmentType


@dataclass(frozen=True)
class CoverageTarget:
    """Staffing target for one work item on one date."""
    location: str
    type: AssignmentType
    start_time: str
    end_time: str
    minimum: int = 0
    ideal: int = 0
    category: str = ""
    training_type: Optional[str] = None
    directorate: Optional[str] = None
    item_key: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "location": self.location,
            "type": self.type.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "minimum": self.minimum,
            "ideal": self.ideal,
            "category": self.category,
            "training_type": self.training_type,
            "directorate": self.directorate,
            "item_key": self.item_key,
        }

    @classmethod
    def from_dict(cls, d: Dict) -> "CoverageTarget":
        return cls(
            location=d["location"],
            type=AssignmentType.from_string(d.get("type", "role")),
            start_time=d["start_time"],
            end_time=d["end_time"],
            minimum=int(d.get("minimum", 0)),
            ideal=int(d.get("ideal", 0)),
            category=d.get("category", ""),
            training_type=d.get("training_type"),
            directorate=d.get("directorate"),
            item_key=d.get("item_key"),
        )


DEFAULT_CATEGORY_PRIORITY = {
    "ward": 0,
    "eau": 0,
    "dispensary": 1,
    "clinic": 2,
    "pharmacy": 2,
    "management": 3,
}


@dataclass
class EngineConfig:
    """Configuration for the assignment engine."""

    # Work-list ordering (lower rank is filled first)
    category_priority: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_PRIORITY)
    )
    default_category_rank: int = 2

    # Locations whose contiguous blocks move as a unit on reassignment
    continuity_locations: List[str] = field(default_factory=lambda: ["EAU", "AMU"])

    # Half-day split point and end of the working day for new rows
    midday: str = MIDDAY
    day_end: str = DAY_END

    # Stale-draft retention
    retention_months: int = 2

    def category_rank(self, category: Optional[str]) -> int:
        """Rank of a requirement category in the work-list order."""
        key = str(category or "").strip().lower()
        return self.category_priority.get(key, self.default_category_rank)

    def is_continuity_location(self, location: str) -> bool:
        key = location.strip().lower()
        return any(key == c.strip().lower() for c in self.continuity_locations)

    def to_dict(self) -> Dict:
        """Serialize to dictionary."""
        return {
            "category_priority": dict(self.category_priority),
            "default_category_rank": self.default_category_rank,
            "continuity_locations": list(self.continuity_locations),
            "midday": self.midday,
            "day_end": self.day_end,
            "retention_months": self.retention_months,
        }


def load_engine_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Load an EngineConfig from a JSON file; defaults when no path is given.

    The file is validated through ValidatedEngineConfig, so out-of-order day
    boundaries or an out-of-range retention period are rejected. Unknown
    keys are ignored.

    Raises:
        pydantic.ValidationError: the file holds an invalid configuration
    """
    if path is None:
        return EngineConfig()
    from .validated import ValidatedEngineConfig

    with open(path, "r", encoding="utf-8") as f:
        return ValidatedEngineConfig(**json.load(f)).to_dataclass()
