"""
formations/models.py -- Domain dataclass for a training session.

Pattern: Data class. FormationService owns validation and persistence; this
module owns the shape and the row mapping.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional


class FormationMode(str, Enum):
    ON_SITE = "ON_SITE"
    ONLINE = "ONLINE"
    HYBRID = "HYBRID"


# Modes for which each conditional field is required.
LOCATION_MODES = {FormationMode.ON_SITE, FormationMode.HYBRID}
LINK_MODES = {FormationMode.ONLINE, FormationMode.HYBRID}


@dataclass
class Formation:
    """A scheduled training session.

    duration is in hours. location is required for ON_SITE and HYBRID,
    link for ONLINE and HYBRID. A field that stops being required after a mode
    change keeps its stored value until explicitly cleared.
    """

    id: str
    title: str
    description: str
    objectives: str
    mode: FormationMode
    duration: float
    instructor: str
    scheduled_at: str  # ISO 8601
    location: Optional[str] = None
    link: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Formation":
        return cls(
            id=str(row["id"]),
            title=row["title"],
            description=row["description"],
            objectives=row["objectives"],
            mode=FormationMode(row["mode"]),
            duration=float(row["duration"]),
            instructor=row["instructor"],
            scheduled_at=str(row["scheduled_at"]),
            location=row.get("location"),
            link=row.get("link"),
            created_by=row.get("created_by"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data
