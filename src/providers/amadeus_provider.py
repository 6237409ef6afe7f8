# src/providers/amadeus_provider.py

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from core.durations import date_window, parse_duration_minutes, parse_timestamp, shift_date
from core.errors import NoResultsError
from core.models import Itinerary, Offer, SearchParams, Segment
from providers.base import FlightSearchProvider
from services.amadeus_client import AmadeusClient

logger = logging.getLogger(__name__)

FLIGHT_OFFERS_PATH = "/v2/shopping/flight-offers"


def _pick_airline_code(offer: dict) -> str:
    # Prefer validating airline codes if present
    vac = offer.get("validatingAirlineCodes")
    if isinstance(vac, list) and vac:
        return str(vac[0])

    itineraries = offer.get("itineraries", []) or []
    if itineraries and itineraries[0].get("segments"):
        return str(itineraries[0]["segments"][0].get("carrierCode", ""))

    return ""


def _parse_price(price: Dict[str, Any]) -> float:
    total_str = price.get("grandTotal") or price.get("total") or "0"
    try:
        return max(0.0, float(total_str))
    except (TypeError, ValueError):
        logger.warning("Unparseable offer price %r, treating as 0", total_str)
        return 0.0


def _build_itineraries(
    offer_raw: Dict[str, Any],
    carriers_dict: Dict[str, str],
) -> List[Itinerary]:
    """
    Convert Amadeus offer['itineraries'] into canonical Itinerary/Segment objects.
    """
    itineraries_raw = offer_raw.get("itineraries", []) or []
    out: List[Itinerary] = []

    for idx, it in enumerate(itineraries_raw):
        direction = "OUT" if idx == 0 else "RETURN"

        segs: List[Segment] = []
        for seg in it.get("segments", []) or []:
            dep = seg.get("departure", {}) or {}
            arr = seg.get("arrival", {}) or {}

            carrier_code = seg.get("carrierCode")
            carrier_name = carriers_dict.get(
                str(carrier_code), None) if carrier_code else None

            segs.append(
                Segment(
                    origin=str(dep.get("iataCode", "")),
                    destination=str(arr.get("iataCode", "")),
                    dep_at=parse_timestamp(dep.get("at")),
                    arr_at=parse_timestamp(arr.get("at")),
                    carrier_code=str(carrier_code) if carrier_code else None,
                    carrier_name=carrier_name,
                    flight_number=str(seg.get("number")) if seg.get(
                        "number") is not None else None,
                    duration_minutes=parse_duration_minutes(seg.get("duration")),
                )
            )

        out.append(
            Itinerary(
                direction=direction,
                segments=tuple(segs),
                duration_minutes=parse_duration_minutes(it.get("duration")),
            )
        )

    return out


def parse_flight_offers(payload: Dict[str, Any], currency: str = "GBP") -> List[Offer]:
    """Turn a flight-offers search response into Offers, keeping upstream order."""
    data = payload.get("data", []) or []

    dictionaries = payload.get("dictionaries", {}) or {}
    carriers_dict = dictionaries.get("carriers", {}) or {}

    offers: List[Offer] = []
    for idx, o in enumerate(data):
        price = o.get("price", {}) or {}
        airline_code = _pick_airline_code(o)

        offers.append(
            Offer(
                id=str(o.get("id") or idx + 1),
                itineraries=tuple(_build_itineraries(o, carriers_dict)),
                total_price=_parse_price(price),
                currency=str(price.get("currency") or currency),
                remaining_seats=int(o.get("numberOfBookableSeats") or 0),
                primary_carrier=airline_code,
                carrier_name=carriers_dict.get(airline_code) if airline_code else None,
            )
        )

    return offers


def _dedup_offers(offers: List[Offer]) -> List[Offer]:
    """
    Deduplicate offers by itinerary signature; keep the cheapest offer per
    signature at the position where that signature first appeared.
    """
    best_by_sig: Dict[str, Offer] = {}
    for o in offers:
        sig = o.signature()
        if sig not in best_by_sig or o.total_price < best_by_sig[sig].total_price:
            best_by_sig[sig] = o
    return list(best_by_sig.values())


class AmadeusProvider(FlightSearchProvider):
    """
    Live provider (Amadeus Self-Service Flight Offers Search).
    """

    def __init__(self, client: Optional[AmadeusClient] = None, max_results: Optional[int] = None):
        self.client = client or AmadeusClient()
        self.max_results = max_results

    def build_query(self, params: SearchParams) -> Dict[str, Any]:
        query: Dict[str, Any] = {
            "originLocationCode": params.origin.upper(),
            "destinationLocationCode": params.destination.upper(),
            "departureDate": params.departure_date.isoformat(),
            "adults": max(1, int(params.adults)),
            "travelClass": params.travel_class.upper().replace(" ", "_"),
            "nonStop": "true" if params.non_stop else "false",
            "currencyCode": params.currency,
            "max": self.max_results or params.max_results,
        }

        if params.return_date:
            query["returnDate"] = params.return_date.isoformat()
        if params.children > 0:
            query["children"] = int(params.children)

        return query

    def _search_one(self, params: SearchParams) -> List[Offer]:
        payload = self.client.get(FLIGHT_OFFERS_PATH, self.build_query(params))
        offers = parse_flight_offers(payload, params.currency)
        logger.debug(
            "Amadeus returned %d offers for %s -> %s on %s",
            len(offers),
            params.origin,
            params.destination,
            params.departure_date,
        )
        return offers

    def search(self, params: SearchParams) -> List[Offer]:
        if params.flexible_days <= 0:
            offers = _dedup_offers(self._search_one(params))
        else:
            trip_len = None
            if params.return_date:
                trip_len = (params.return_date - params.departure_date).days

            results: List[Offer] = []
            for dep in date_window(params.departure_date, params.flexible_days):
                ret = shift_date(dep, trip_len) if trip_len is not None else None
                day_offers = self._search_one(
                    replace(params, departure_date=dep, return_date=ret, flexible_days=0)
                )
                # upstream ids restart at 1 for every request
                results.extend(replace(o, id=f"{dep.isoformat()}-{o.id}") for o in day_offers)
            offers = _dedup_offers(results)

        if not offers:
            raise NoResultsError(
                f"No flights found from {params.origin} to {params.destination} "
                f"on {params.departure_date.isoformat()}"
            )
        return offers
