# src/core/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


# Time-of-day ceilings are minutes since local midnight.
LAST_MINUTE_OF_DAY = 1439

# Stop-count bucket names, in display order.
DIRECT = "direct"
ONE_STOP = "one_stop"
TWO_PLUS_STOPS = "two_plus_stops"
STOP_BUCKETS = (DIRECT, ONE_STOP, TWO_PLUS_STOPS)


class SortKey(str, Enum):
    PRICE = "price"
    DURATION = "duration"
    STOPS = "stops"


@dataclass(frozen=True)
class SearchParams:
    origin: str
    destination: str
    departure_date: date
    return_date: Optional[date] = None
    adults: int = 1
    children: int = 0
    travel_class: str = "ECONOMY"  # ECONOMY | PREMIUM_ECONOMY | BUSINESS | FIRST
    non_stop: bool = False
    currency: str = "GBP"
    max_results: int = 30
    flexible_days: int = 0  # search +/- N days around departure_date

    @property
    def is_roundtrip(self) -> bool:
        return self.return_date is not None


@dataclass(frozen=True)
class Segment:
    """A single flown leg."""

    origin: str
    destination: str
    dep_at: Optional[datetime] = None
    arr_at: Optional[datetime] = None
    carrier_code: Optional[str] = None  # e.g. "FR"
    carrier_name: Optional[str] = None  # e.g. "Ryanair"
    flight_number: Optional[str] = None
    duration_minutes: int = 0


@dataclass(frozen=True)
class Itinerary:
    """A collection of segments representing one direction of travel."""

    direction: str  # "OUT" | "RETURN"
    segments: Tuple[Segment, ...] = ()
    duration_minutes: int = 0

    @property
    def stops(self) -> int:
        return max(0, len(self.segments) - 1)

    @property
    def departure_at(self) -> Optional[datetime]:
        if not self.segments:
            return None
        return self.segments[0].dep_at

    @property
    def arrival_at(self) -> Optional[datetime]:
        if not self.segments:
            return None
        return self.segments[-1].arr_at


@dataclass(frozen=True)
class Offer:
    """One priced, bookable itinerary option from a single search.

    Offers are immutable once a batch is delivered: filtering and sorting
    only ever project a batch, they never modify it.
    """

    id: str
    itineraries: Tuple[Itinerary, ...]
    total_price: float
    currency: str = "GBP"
    remaining_seats: int = 0
    primary_carrier: str = ""
    carrier_name: Optional[str] = None

    @property
    def outbound(self) -> Optional[Itinerary]:
        return self.itineraries[0] if self.itineraries else None

    @property
    def inbound(self) -> Optional[Itinerary]:
        return self.itineraries[1] if len(self.itineraries) > 1 else None

    @property
    def outbound_stops(self) -> int:
        out = self.outbound
        return out.stops if out else 0

    @property
    def outbound_duration(self) -> int:
        out = self.outbound
        return out.duration_minutes if out else 0

    def signature(self) -> str:
        """
        Stable signature for an itinerary based on segment chain.
        Same physical flight plan -> same signature.
        """
        parts: List[str] = []
        for it in self.itineraries:
            seg_parts: List[str] = []
            for s in it.segments:
                dep = s.dep_at.isoformat() if s.dep_at else ""
                seg_parts.append(
                    "|".join(
                        [
                            s.origin or "",
                            s.destination or "",
                            s.carrier_code or "",
                            s.flight_number or "",
                            dep,
                        ]
                    )
                )
            parts.append(">".join(seg_parts))

        sig = "||".join(parts).strip()
        # Offers without segments can only be told apart by id.
        return sig or f"id:{self.id}"


class CarrierInclusion:
    """
    Carrier code -> included flag.

    A carrier that has never been set is included: `is_included` is the one
    place that lookup happens, so callers never fall back on their own.
    """

    def __init__(self, flags: Optional[Dict[str, bool]] = None):
        self._flags: Dict[str, bool] = dict(flags or {})

    @classmethod
    def all_included(cls, codes) -> "CarrierInclusion":
        return cls({code: True for code in codes})

    def is_included(self, code: str) -> bool:
        return self._flags.get(code, True) is not False

    def set(self, code: str, included: bool) -> None:
        self._flags[code] = bool(included)

    def excluded(self) -> List[str]:
        return sorted(code for code, flag in self._flags.items() if not flag)

    def copy(self) -> "CarrierInclusion":
        return CarrierInclusion(self._flags)

    def as_dict(self) -> Dict[str, bool]:
        return dict(self._flags)

    def __contains__(self, code: object) -> bool:
        return code in self._flags

    def __len__(self) -> int:
        return len(self._flags)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CarrierInclusion):
            return NotImplemented
        return self._flags == other._flags

    def __repr__(self) -> str:
        return f"CarrierInclusion({self._flags!r})"


@dataclass
class ConstraintSet:
    """Caller-owned facet limits; the single source of truth for what is visible."""

    direct: bool = True
    one_stop: bool = True
    two_plus_stops: bool = True
    max_price: float = 9999
    max_duration: int = 1440  # outbound itinerary, minutes
    max_outbound_departure_minutes: int = LAST_MINUTE_OF_DAY
    # Collected from the user but not applied by filter_offers.
    max_return_departure_minutes: int = LAST_MINUTE_OF_DAY
    carrier_inclusion: CarrierInclusion = field(default_factory=CarrierInclusion)
    # No per-offer baggage data exists yet; these are recorded only.
    require_cabin_bag: bool = False
    require_checked_bag: bool = False

    def stop_bucket_enabled(self, bucket: str) -> bool:
        return bool(getattr(self, bucket))

    def set_stop_bucket(self, bucket: str, enabled: bool) -> None:
        if bucket not in STOP_BUCKETS:
            raise ValueError(f"Unknown stop bucket: {bucket}")
        setattr(self, bucket, bool(enabled))


@dataclass(frozen=True)
class CarrierOption:
    code: str
    min_price: float
    name: Optional[str] = None


@dataclass(frozen=True)
class StopBucketMinimums:
    """Cheapest price per outbound stop bucket; None means no such offers."""

    direct: Optional[float] = None
    one_stop: Optional[float] = None
    two_plus_stops: Optional[float] = None

    def get(self, bucket: str) -> Optional[float]:
        return getattr(self, bucket)


@dataclass(frozen=True)
class FacetRanges:
    price_range: Tuple[int, int] = (0, 9999)
    duration_range: Tuple[int, int] = (0, 1440)
    carrier_options: Tuple[CarrierOption, ...] = ()

    def seed_constraints(self) -> ConstraintSet:
        """Fresh constraints whose bounds cover every offer the ranges came from."""
        return ConstraintSet(
            max_price=self.price_range[1],
            max_duration=self.duration_range[1],
            carrier_inclusion=CarrierInclusion.all_included(
                opt.code for opt in self.carrier_options
            ),
        )
