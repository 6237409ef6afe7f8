# src/core/facets.py

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Union

from core.durations import time_of_day_minutes
from core.models import (
    DIRECT,
    ONE_STOP,
    TWO_PLUS_STOPS,
    CarrierOption,
    ConstraintSet,
    FacetRanges,
    Offer,
    SortKey,
    StopBucketMinimums,
)

logger = logging.getLogger(__name__)

EMPTY_PRICE_RANGE = (0, 9999)
EMPTY_DURATION_RANGE = (0, 1440)


def stop_bucket(offer: Offer) -> str:
    """Classify by outbound stop count: 0 -> direct, 1 -> one_stop, 2+ -> two_plus_stops."""
    stops = offer.outbound_stops
    if stops == 0:
        return DIRECT
    if stops == 1:
        return ONE_STOP
    return TWO_PLUS_STOPS


def _outbound_departure_minutes(offer: Offer) -> int:
    out = offer.outbound
    return time_of_day_minutes(out.departure_at) if out else 0


def carrier_options(batch: Sequence[Offer]) -> List[CarrierOption]:
    """
    Cheapest price per primary carrier, cheapest carrier first.
    Ties on price are broken by carrier code so the order is deterministic.
    """
    cheapest: Dict[str, float] = {}
    names: Dict[str, Optional[str]] = {}
    for o in batch:
        code = o.primary_carrier
        if code not in cheapest or o.total_price < cheapest[code]:
            cheapest[code] = o.total_price
        if names.get(code) is None:
            names[code] = o.carrier_name

    options = [CarrierOption(code, price, names.get(code)) for code, price in cheapest.items()]
    options.sort(key=lambda opt: (opt.min_price, opt.code))
    return options


def derive_default_ranges(batch: Sequence[Offer]) -> FacetRanges:
    """
    Legal slider ranges and carrier options for a batch.

    An empty batch yields the fixed defaults (0..9999 price, 0..1440
    duration, no carriers) rather than failing.
    """
    if not batch:
        return FacetRanges(EMPTY_PRICE_RANGE, EMPTY_DURATION_RANGE, ())

    prices = [o.total_price for o in batch]
    durations = [o.outbound_duration for o in batch]

    return FacetRanges(
        price_range=(math.floor(min(prices)), math.ceil(max(prices))),
        duration_range=(math.floor(min(durations)), math.ceil(max(durations))),
        carrier_options=tuple(carrier_options(batch)),
    )


def compute_stop_bucket_minimums(batch: Sequence[Offer]) -> StopBucketMinimums:
    minimums: Dict[str, float] = {}
    for o in batch:
        bucket = stop_bucket(o)
        if bucket not in minimums or o.total_price < minimums[bucket]:
            minimums[bucket] = o.total_price

    return StopBucketMinimums(
        direct=minimums.get(DIRECT),
        one_stop=minimums.get(ONE_STOP),
        two_plus_stops=minimums.get(TWO_PLUS_STOPS),
    )


def offer_matches(offer: Offer, constraints: ConstraintSet) -> bool:
    if not constraints.stop_bucket_enabled(stop_bucket(offer)):
        return False
    if offer.total_price > constraints.max_price:
        return False
    if offer.outbound_duration > constraints.max_duration:
        return False
    if _outbound_departure_minutes(offer) > constraints.max_outbound_departure_minutes:
        return False
    # max_return_departure_minutes is deliberately not checked here; see DESIGN.md.
    return constraints.carrier_inclusion.is_included(offer.primary_carrier)


def filter_offers(batch: Sequence[Offer], constraints: ConstraintSet) -> List[Offer]:
    """Offers passing every active facet, in batch order."""
    if constraints.require_cabin_bag or constraints.require_checked_bag:
        logger.warning(
            "Baggage filters requested but offers carry no baggage data; ignoring them"
        )
    return [o for o in batch if offer_matches(o, constraints)]


_SORT_KEYS = {
    SortKey.PRICE: lambda o: o.total_price,
    SortKey.DURATION: lambda o: o.outbound_duration,
    SortKey.STOPS: lambda o: o.outbound_stops,
}


def sort_offers(offers: Iterable[Offer], sort_key: Union[SortKey, str]) -> List[Offer]:
    """Ascending sort; equal keys keep their batch order (upstream ranking)."""
    return sorted(offers, key=_SORT_KEYS[SortKey(sort_key)])


def filter_and_sort(
    batch: Sequence[Offer],
    constraints: ConstraintSet,
    sort_key: Union[SortKey, str] = SortKey.PRICE,
) -> List[Offer]:
    return sort_offers(filter_offers(batch, constraints), sort_key)


def cheapest_price(batch: Sequence[Offer]) -> Optional[float]:
    """Lowest price across the whole batch, independent of active filters."""
    if not batch:
        return None
    return min(o.total_price for o in batch)


def fastest_offer(batch: Sequence[Offer]) -> Optional[Offer]:
    """Offer with the shortest outbound duration; the first one in batch order on ties."""
    if not batch:
        return None
    return min(batch, key=lambda o: o.outbound_duration)


def fastest_price(batch: Sequence[Offer]) -> Optional[float]:
    fastest = fastest_offer(batch)
    return fastest.total_price if fastest is not None else None


def cheapest_by_departure_date(batch: Sequence[Offer]) -> Dict[date, float]:
    """
    Lowest price per outbound departure date, in date order. Offers without
    a departure timestamp are left out.
    """
    cheapest: Dict[date, float] = {}
    for offer in batch:
        out = offer.outbound
        dep_at = out.departure_at if out else None
        if dep_at is None:
            continue
        day = dep_at.date()
        if day not in cheapest or offer.total_price < cheapest[day]:
            cheapest[day] = offer.total_price
    return dict(sorted(cheapest.items()))


def price_tier(price: float, prices: Sequence[float]) -> str:
    """
    Place a price in the cheap / mid / expensive third of `prices`.
    With nothing to compare against everything is 'expensive'.
    """
    if not prices:
        return "expensive"
    ordered = sorted(prices)
    third = math.ceil(len(ordered) / 3)
    low = ordered[third - 1]
    mid = ordered[min(third * 2, len(ordered)) - 1]
    if price <= low:
        return "cheap"
    if price <= mid:
        return "mid"
    return "expensive"
