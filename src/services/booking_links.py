# src/services/booking_links.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional
from urllib.parse import urlencode

from core.models import SearchParams

AIRLINE_NAMES: Dict[str, str] = {
    "FR": "Ryanair", "U2": "easyJet", "W9": "Wizz Air", "BA": "British Airways",
    "EK": "Emirates", "LH": "Lufthansa", "AF": "Air France", "KL": "KLM",
    "IB": "Iberia", "VY": "Vueling", "LS": "Jet2", "AA": "American Airlines",
    "DL": "Delta", "UA": "United Airlines", "QR": "Qatar Airways", "EY": "Etihad",
    "SQ": "Singapore Airlines", "CX": "Cathay Pacific", "TK": "Turkish Airlines",
    "DY": "Norwegian", "SK": "SAS", "AY": "Finnair", "OS": "Austrian",
    "LX": "Swiss", "SN": "Brussels Airlines", "TP": "TAP Air Portugal",
}

DIRECT_AIRLINE_URLS: Dict[str, str] = {
    "FR": "https://www.ryanair.com/gb/en/trip/flights/select",
    "U2": "https://www.easyjet.com/en/",
    "BA": "https://www.britishairways.com/travel/book/public/en_gb",
    "KL": "https://www.klm.com/en/",
    "AF": "https://www.airfrance.co.uk/",
    "LH": "https://www.lufthansa.com/gb/en/homepage",
    "IB": "https://www.iberia.com/",
    "VY": "https://www.vueling.com/en",
    "TK": "https://www.turkishairlines.com/",
    "QR": "https://www.qatarairways.com/",
    "EK": "https://www.emirates.com/",
    "EY": "https://www.etihad.com/",
    "SQ": "https://www.singaporeair.com/",
}

SKYSCANNER_CABINS = {
    "ECONOMY": "economy",
    "PREMIUM_ECONOMY": "premiumeconomy",
    "BUSINESS": "business",
    "FIRST": "first",
}


@dataclass(frozen=True)
class BookingLink:
    label: str
    sublabel: str
    url: str
    kind: str  # "airline" | "kiwi" | "google" | "skyscanner"


def airline_name(code: str, fallback: Optional[str] = None) -> str:
    return AIRLINE_NAMES.get(code) or fallback or code


def _skyscanner_date(d: date) -> str:
    return d.strftime("%y%m%d")


def _kiwi_date(d: date) -> str:
    return d.strftime("%d/%m/%Y")


def build_booking_links(params: SearchParams, carrier_code: str = "") -> List[BookingLink]:
    """
    Outbound links for booking an offer elsewhere. The airline's own site
    comes first when we know it.
    """
    origin = params.origin.upper()
    dest = params.destination.upper()
    cabin = SKYSCANNER_CABINS.get(params.travel_class.upper().replace(" ", "_"), "economy")

    ss_path = f"https://www.skyscanner.net/transport/flights/{origin}/{dest}/{_skyscanner_date(params.departure_date)}/"
    kiwi_path = f"https://www.kiwi.com/en/search/results/{origin}/{dest}/{_kiwi_date(params.departure_date)}"
    if params.return_date:
        ss_path += f"{_skyscanner_date(params.return_date)}/"
        kiwi_path += f"/{_kiwi_date(params.return_date)}"

    ss_url = ss_path + "?" + urlencode(
        {"adults": params.adults, "children": params.children, "cabinclass": cabin}
    )
    kiwi_url = kiwi_path + "?" + urlencode({"adults": params.adults, "children": params.children})
    google_url = f"https://www.google.com/travel/flights?q=Flights+from+{origin}+to+{dest}"

    links = [
        BookingLink("Kiwi.com", "Best fare finder", kiwi_url, "kiwi"),
        BookingLink("Google Flights", "Price overview", google_url, "google"),
        BookingLink("Skyscanner", "Compare & book", ss_url, "skyscanner"),
    ]

    if carrier_code in DIRECT_AIRLINE_URLS:
        links.insert(
            0,
            BookingLink(airline_name(carrier_code), "Book direct", DIRECT_AIRLINE_URLS[carrier_code], "airline"),
        )
    return links
