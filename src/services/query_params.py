# src/services/query_params.py

from __future__ import annotations

from typing import Dict, Mapping, Tuple

from core.models import (
    LAST_MINUTE_OF_DAY,
    STOP_BUCKETS,
    ConstraintSet,
    FacetRanges,
    SortKey,
)

# Short query keys for each stop bucket.
_STOP_KEYS = {"direct": "0", "one_stop": "1", "two_plus_stops": "2"}


def _as_int(value, default: int, low: int, high: int) -> int:
    try:
        n = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(low, min(high, n))


def constraints_to_query(
    constraints: ConstraintSet,
    sort_key: SortKey,
    ranges: FacetRanges,
) -> Dict[str, str]:
    """
    Flatten constraint state into string query parameters. Values equal to
    their defaults are left out so an untouched page has a clean URL.
    """
    query: Dict[str, str] = {}

    stops = [_STOP_KEYS[b] for b in STOP_BUCKETS if constraints.stop_bucket_enabled(b)]
    if len(stops) != len(STOP_BUCKETS):
        query["stops"] = ",".join(stops) or "none"

    if constraints.max_price < ranges.price_range[1]:
        query["max_price"] = str(int(constraints.max_price))
    if constraints.max_duration < ranges.duration_range[1]:
        query["max_duration"] = str(int(constraints.max_duration))
    if constraints.max_outbound_departure_minutes < LAST_MINUTE_OF_DAY:
        query["out_time"] = str(constraints.max_outbound_departure_minutes)
    if constraints.max_return_departure_minutes < LAST_MINUTE_OF_DAY:
        query["ret_time"] = str(constraints.max_return_departure_minutes)

    excluded = constraints.carrier_inclusion.excluded()
    if excluded:
        query["exclude"] = ",".join(excluded)

    if constraints.require_cabin_bag:
        query["cabin_bag"] = "1"
    if constraints.require_checked_bag:
        query["checked_bag"] = "1"

    key = SortKey(sort_key)
    if key is not SortKey.PRICE:
        query["sort"] = key.value

    return query


def constraints_from_query(
    query: Mapping[str, str],
    ranges: FacetRanges,
) -> Tuple[ConstraintSet, SortKey]:
    """
    Rebuild constraints from query parameters on top of the defaults seeded
    by `ranges`. Anything missing or unreadable keeps its default.
    """
    constraints = ranges.seed_constraints()

    stops = query.get("stops")
    if stops is not None:
        wanted = {s.strip() for s in str(stops).split(",")}
        for bucket, key in _STOP_KEYS.items():
            constraints.set_stop_bucket(bucket, key in wanted)

    low_price, high_price = ranges.price_range
    constraints.max_price = _as_int(query.get("max_price"), high_price, low_price, high_price)

    low_dur, high_dur = ranges.duration_range
    constraints.max_duration = _as_int(query.get("max_duration"), high_dur, low_dur, high_dur)

    constraints.max_outbound_departure_minutes = _as_int(
        query.get("out_time"), LAST_MINUTE_OF_DAY, 0, LAST_MINUTE_OF_DAY
    )
    constraints.max_return_departure_minutes = _as_int(
        query.get("ret_time"), LAST_MINUTE_OF_DAY, 0, LAST_MINUTE_OF_DAY
    )

    for code in str(query.get("exclude") or "").split(","):
        code = code.strip().upper()
        if code:
            constraints.carrier_inclusion.set(code, False)

    constraints.require_cabin_bag = query.get("cabin_bag") == "1"
    constraints.require_checked_bag = query.get("checked_bag") == "1"

    try:
        sort_key = SortKey(query.get("sort") or SortKey.PRICE.value)
    except ValueError:
        sort_key = SortKey.PRICE

    return constraints, sort_key
