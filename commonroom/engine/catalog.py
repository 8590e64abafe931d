"""
commonroom.engine.catalog — Demonstration Content Catalog
===========================================================

Loads the versioned list of demonstration data sets from
``commonroom/seeds/demo_catalog.yaml``.  Each set carries facilities and
historical events (with analytics) that the seeding service injects into a
newly observed community.

The catalog is read once per process and is immutable afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from commonroom.database.models import EventType, FacilityType
from commonroom.engine.targets import parse_datetime

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).resolve().parent.parent / "seeds" / "demo_catalog.yaml"


@dataclass(frozen=True, slots=True)
class DemoFacility:
    name: str
    type: FacilityType
    capacity: int
    description: str = ""
    amenities: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DemoAnalytics:
    total_registrations: int
    actual_attendance: int
    attendance_rate: float
    average_rating: float
    total_feedbacks: int
    positive_feedback_count: int
    engagement_score: float
    success_factors: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DemoEvent:
    title: str
    event_type: EventType
    start_date: datetime
    end_date: datetime
    location: str
    facility_type: FacilityType | None
    actual_cost: float
    max_capacity: int
    analytics: DemoAnalytics


@dataclass(frozen=True, slots=True)
class DemoDataSet:
    set_id: str
    facilities: tuple[DemoFacility, ...] = field(default_factory=tuple)
    past_events: tuple[DemoEvent, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class DemoCatalog:
    version: int
    sets: tuple[DemoDataSet, ...]

    def __len__(self) -> int:
        return len(self.sets)

    def __getitem__(self, index: int) -> DemoDataSet:
        return self.sets[index]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------
def _parse_facility(raw: dict[str, Any]) -> DemoFacility:
    return DemoFacility(
        name=raw["name"],
        type=FacilityType(raw["type"]),
        capacity=int(raw["capacity"]),
        description=raw.get("description", ""),
        amenities=tuple(raw.get("amenities") or ()),
    )


def _parse_event(raw: dict[str, Any]) -> DemoEvent:
    a = raw["analytics"]
    facility_type = raw.get("facility_type")
    return DemoEvent(
        title=raw["title"],
        event_type=EventType(raw["event_type"]),
        start_date=parse_datetime(raw["start_date"]),
        end_date=parse_datetime(raw["end_date"]),
        location=raw.get("location", ""),
        facility_type=FacilityType(facility_type) if facility_type else None,
        actual_cost=float(raw.get("actual_cost", 0)),
        max_capacity=int(raw.get("max_capacity", 0)),
        analytics=DemoAnalytics(
            total_registrations=int(a["total_registrations"]),
            actual_attendance=int(a["actual_attendance"]),
            attendance_rate=float(a["attendance_rate"]),
            average_rating=float(a["average_rating"]),
            total_feedbacks=int(a["total_feedbacks"]),
            positive_feedback_count=int(a["positive_feedback_count"]),
            engagement_score=float(a["engagement_score"]),
            success_factors=tuple(a.get("success_factors") or ()),
        ),
    )


def parse_catalog(raw: dict[str, Any]) -> DemoCatalog:
    """Turn the YAML mapping into a :class:`DemoCatalog`.

    Raises
    ------
    ValueError
        If the catalog has no sets or two sets share an id.
    """
    sets = tuple(
        DemoDataSet(
            set_id=s["set_id"],
            facilities=tuple(_parse_facility(f) for f in s.get("facilities") or ()),
            past_events=tuple(_parse_event(e) for e in s.get("past_events") or ()),
        )
        for s in raw.get("sets") or ()
    )
    if not sets:
        raise ValueError("Demonstration catalog is empty")
    ids = [s.set_id for s in sets]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Duplicate set_id in demonstration catalog: {ids}")
    return DemoCatalog(version=int(raw.get("version", 1)), sets=sets)


def load_catalog(path: str | Path = CATALOG_PATH) -> DemoCatalog:
    """Load and parse a catalog file."""
    with open(path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    catalog = parse_catalog(raw)
    logger.info(
        "Loaded demonstration catalog v%d with %d sets.", catalog.version, len(catalog)
    )
    return catalog


@lru_cache(maxsize=1)
def default_catalog() -> DemoCatalog:
    """The packaged catalog, parsed once per process."""
    return load_catalog(CATALOG_PATH)
