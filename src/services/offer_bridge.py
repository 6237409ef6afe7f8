# src/services/offer_bridge.py

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from core.durations import format_minutes, format_time_of_day, time_of_day_minutes
from core.models import Itinerary, Offer

LOW_SEATS_THRESHOLD = 5

COLUMNS = [
    "id",
    "airline",
    "price",
    "currency",
    "depart",
    "arrive",
    "duration",
    "stops",
    "return_depart",
    "return_duration",
    "return_stops",
    "seats_hint",
]


def stops_label(stops: int) -> str:
    if stops == 0:
        return "Direct"
    return f"{stops} stop{'s' if stops > 1 else ''}"


def seats_hint(remaining_seats: int) -> Optional[str]:
    if 0 < remaining_seats <= LOW_SEATS_THRESHOLD:
        return f"{remaining_seats} seats left"
    return None


def _clock(it: Optional[Itinerary], arrival: bool = False) -> Optional[str]:
    if it is None:
        return None
    ts = it.arrival_at if arrival else it.departure_at
    if ts is None:
        return None
    return format_time_of_day(time_of_day_minutes(ts))


def offer_to_row(o: Offer) -> Dict[str, Any]:
    out = o.outbound
    ret = o.inbound
    return {
        "id": o.id,
        "airline": o.carrier_name or o.primary_carrier or "Unknown airline",
        "price": o.total_price,
        "currency": o.currency,
        "depart": _clock(out),
        "arrive": _clock(out, arrival=True),
        "duration": format_minutes(o.outbound_duration),
        "stops": stops_label(o.outbound_stops),
        "return_depart": _clock(ret),
        "return_duration": format_minutes(ret.duration_minutes) if ret else None,
        "return_stops": stops_label(ret.stops) if ret else None,
        "seats_hint": seats_hint(o.remaining_seats),
    }


def offers_to_rows(offers: Sequence[Offer]) -> List[Dict[str, Any]]:
    return [offer_to_row(o) for o in offers]


def offers_to_frame(offers: Sequence[Offer]) -> pd.DataFrame:
    """Flat table of offers in the order given; empty input keeps the columns."""
    df = pd.DataFrame(offers_to_rows(offers), columns=COLUMNS)
    if not df["return_depart"].notna().any():
        df = df.drop(columns=["return_depart", "return_duration", "return_stops"])
    return df
