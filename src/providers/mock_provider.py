# src/providers/mock_provider.py

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from core.durations import date_window, shift_date
from core.errors import NoResultsError
from core.models import Itinerary, Offer, SearchParams, Segment
from providers.base import FlightSearchProvider

# Carrier, base price, outbound stops, departure "HH:MM", duration minutes.
_TEMPLATES = [
    ("FR", 0.0, 0, "06:15", 155),
    ("U2", -12.0, 0, "09:40", 160),
    ("BA", 85.0, 0, "13:05", 150),
    ("KL", 40.0, 1, "07:30", 295),
    ("LH", 55.0, 1, "11:50", 340),
    ("TK", 30.0, 2, "21:45", 610),
]

_CARRIER_NAMES = {
    "FR": "Ryanair",
    "U2": "easyJet",
    "BA": "British Airways",
    "KL": "KLM",
    "LH": "Lufthansa",
    "TK": "Turkish Airlines",
}

_HUBS = ["AMS", "FRA", "IST"]

# Added to the base price by departure weekday (Monday first).
_WEEKDAY_SURCHARGE = [0.0, -8.0, -10.0, 4.0, 22.0, 12.0, 18.0]


def _build_itinerary(
    direction: str,
    origin: str,
    destination: str,
    dep_at: datetime,
    stops: int,
    duration_minutes: int,
    carrier: str,
    flight_base: int,
) -> Itinerary:
    points = [origin] + _HUBS[:stops] + [destination]
    leg_minutes = duration_minutes // (stops + 1)

    segs: List[Segment] = []
    cursor = dep_at
    for i in range(stops + 1):
        arrive = cursor + timedelta(minutes=leg_minutes)
        segs.append(
            Segment(
                origin=points[i],
                destination=points[i + 1],
                dep_at=cursor,
                arr_at=arrive,
                carrier_code=carrier,
                carrier_name=_CARRIER_NAMES.get(carrier),
                flight_number=str(flight_base + i),
                duration_minutes=leg_minutes,
            )
        )
        cursor = arrive

    return Itinerary(direction=direction, segments=tuple(segs), duration_minutes=duration_minutes)


def generate_dummy_offers(params: SearchParams, base_price: float = 120.0) -> List[Dict[str, Any]]:
    """
    Simulate one search batch as plain dicts (the shape MockProvider wraps).

    Respects:
      - return_date (round trip vs one-way)
      - non_stop (direct flights only)
      - max_results
    """
    rows: List[Dict[str, Any]] = []
    for idx, (carrier, delta, stops, dep_hhmm, minutes) in enumerate(_TEMPLATES):
        if params.non_stop and stops > 0:
            continue

        hour, minute = (int(p) for p in dep_hhmm.split(":"))
        price = base_price + delta
        if params.return_date:
            price *= 1.8

        rows.append(
            {
                "id": str(idx + 1),
                "carrier": carrier,
                "stops": stops,
                "dep_at": datetime.combine(params.departure_date, datetime.min.time()).replace(
                    hour=hour, minute=minute
                ),
                "duration_minutes": minutes,
                "total_price": round(price * max(1, params.adults), 2),
                "remaining_seats": 3 + (idx * 2) % 7,
            }
        )

    return rows[: max(0, params.max_results)]


class MockProvider(FlightSearchProvider):
    """
    Deterministic offline provider for dev/testing.
    """

    def __init__(self, base_price: float = 120.0, fail_with: Optional[Exception] = None):
        self.base_price = base_price
        self.fail_with = fail_with

    def _search_one(self, params: SearchParams) -> List[Offer]:
        base_price = self.base_price + _WEEKDAY_SURCHARGE[params.departure_date.weekday()]
        offers: List[Offer] = []
        for d in generate_dummy_offers(params, base_price):
            flight_base = 100 * (int(d["id"]) + 1)
            itineraries = [
                _build_itinerary(
                    "OUT", params.origin, params.destination, d["dep_at"],
                    d["stops"], d["duration_minutes"], d["carrier"], flight_base,
                )
            ]
            if params.return_date:
                ret_at = datetime.combine(params.return_date, d["dep_at"].time())
                itineraries.append(
                    _build_itinerary(
                        "RETURN", params.destination, params.origin, ret_at,
                        d["stops"], d["duration_minutes"], d["carrier"], flight_base + 50,
                    )
                )

            offers.append(
                Offer(
                    id=d["id"],
                    itineraries=tuple(itineraries),
                    total_price=d["total_price"],
                    currency=params.currency,
                    remaining_seats=d["remaining_seats"],
                    primary_carrier=d["carrier"],
                    carrier_name=_CARRIER_NAMES.get(d["carrier"]),
                )
            )

        return offers

    def search(self, params: SearchParams) -> List[Offer]:
        if self.fail_with is not None:
            raise self.fail_with

        if params.flexible_days <= 0:
            offers = self._search_one(params)
        else:
            trip_len = None
            if params.return_date:
                trip_len = (params.return_date - params.departure_date).days

            offers = []
            for dep in date_window(params.departure_date, params.flexible_days):
                ret = shift_date(dep, trip_len) if trip_len is not None else None
                day_offers = self._search_one(
                    replace(params, departure_date=dep, return_date=ret, flexible_days=0)
                )
                offers.extend(replace(o, id=f"{dep.isoformat()}-{o.id}") for o in day_offers)

        if not offers:
            raise NoResultsError("No flights found in the offline data set")
        return offers
