import logging
from datetime import date, timedelta

import streamlit as st

from core.durations import format_minutes, format_time_of_day
from core.errors import ConfigurationError
from core.facets import (
    cheapest_by_departure_date,
    cheapest_price,
    compute_stop_bucket_minimums,
    fastest_offer,
    fastest_price,
    price_tier,
)
from core.models import (
    LAST_MINUTE_OF_DAY,
    STOP_BUCKETS,
    SearchParams,
    SortKey,
)
from core.session import EMPTY, FAILED, IDLE, NO_MATCHES, SearchSession
from providers.amadeus_provider import AmadeusProvider
from providers.mock_provider import MockProvider
from services.amadeus_client import AmadeusClient
from services.booking_links import airline_name, build_booking_links
from services.offer_bridge import offers_to_frame
from services.query_params import constraints_from_query, constraints_to_query
from services.settings import Settings, configure_logging

settings = Settings.from_env()
configure_logging(settings.log_level)
logger = logging.getLogger("streamlit_app")

st.set_page_config(
    page_title="Flight search",
    layout="wide",
)

STOP_LABELS = {
    "direct": "Direct",
    "one_stop": "1 stop",
    "two_plus_stops": "2+ stops",
}

TIER_LABELS = {
    "cheap": "cheapest dates",
    "mid": "average",
    "expensive": "pricier",
}


@st.cache_resource
def load_provider():
    """
    Live Amadeus provider when credentials are configured, offline data
    otherwise. The client (and its token cache) lives as long as the app.
    """
    if not settings.has_amadeus_credentials:
        logger.info("No Amadeus credentials configured, using offline offers")
        return MockProvider()
    try:
        return AmadeusProvider(AmadeusClient(settings), max_results=settings.results_max)
    except ConfigurationError:
        logger.exception("Amadeus client could not be configured")
        return MockProvider()


def _session() -> SearchSession:
    if "search_session" not in st.session_state:
        st.session_state.search_session = SearchSession()
    return st.session_state.search_session


def _money(amount, currency: str) -> str:
    return f"{currency} {amount:,.0f}" if amount is not None else "n/a"


provider = load_provider()
session = _session()

# A shared link seeds the filters of the first search only.
if "shared_query" not in st.session_state:
    st.session_state.shared_query = st.query_params.to_dict()

st.title("✈️ Flight search")

with st.sidebar:
    st.header("Search flights")

    trip_structure = st.radio("Trip", options=["Return", "One-way"], index=0)
    origin = st.text_input("From", "LON")
    destination = st.text_input("To", "BCN")

    today = date.today()
    departure_date = st.date_input("Depart", value=today + timedelta(days=14), min_value=today)
    return_date = None
    if trip_structure == "Return":
        return_date = st.date_input(
            "Return",
            value=departure_date + timedelta(days=7),
            min_value=departure_date,
        )

    adults = st.number_input("Adults", min_value=1, max_value=9, value=1, step=1)
    children = st.number_input("Children", min_value=0, max_value=8, value=0, step=1)
    cabin = st.selectbox("Cabin", ["ECONOMY", "PREMIUM_ECONOMY", "BUSINESS", "FIRST"])
    non_stop = st.checkbox("Direct flights only", key="non_stop")
    flexible = st.checkbox("Flexible dates ± 3 days", key="flexible")

    search_clicked = st.button("Search", key="search")

if search_clicked:
    params = SearchParams(
        origin=origin.strip().upper(),
        destination=destination.strip().upper(),
        departure_date=departure_date,
        return_date=return_date,
        adults=int(adults),
        children=int(children),
        travel_class=cabin,
        non_stop=non_stop,
        currency=settings.default_currency,
        max_results=settings.results_max,
        flexible_days=3 if flexible else 0,
    )
    with st.spinner("Searching flights..."):
        view = session.run(provider, params)

    # Facet widgets from the previous search must not leak into this one.
    for key in [k for k in st.session_state if k.startswith(("stops_", "carrier_"))]:
        del st.session_state[key]

    shared_query = st.session_state.shared_query
    st.session_state.shared_query = {}
    if shared_query:
        constraints, sort_key = constraints_from_query(shared_query, view.ranges)
        session.replace_constraints(constraints)
    else:
        sort_key = SortKey.PRICE
        st.query_params.clear()
    st.session_state.sort_key = sort_key

view = session.view
status = view.status()

if status == IDLE:
    st.info("Use the sidebar to configure a search, then click **Search**.")
    st.stop()

if status == FAILED:
    st.error(f"We couldn't load flights ({view.error.kind}): {view.error.message}")
    st.stop()

if status == EMPTY:
    st.warning("No flights found for this search. Try different dates or airports.")
    st.stop()

params = view.params
currency = view.batch[0].currency
constraints = view.constraints
ranges = view.ranges

# ---- Headline badges (whole batch, independent of filters) ----
fastest = fastest_offer(view.batch)
col1, col2, col3 = st.columns(3)
col1.metric("Cheapest", _money(cheapest_price(view.batch), currency))
col2.metric("Fastest", _money(fastest_price(view.batch), currency), help=format_minutes(fastest.outbound_duration))
col3.metric("Offers", len(view.batch))

# ---- Cheapest fare per departure date (flexible searches) ----
by_date = cheapest_by_departure_date(view.batch)
if len(by_date) > 1:
    st.subheader("Cheapest by departure date")
    day_prices = list(by_date.values())
    for col, (day, price) in zip(st.columns(len(by_date)), by_date.items()):
        col.metric(
            day.strftime("%a %d %b"),
            _money(price, currency),
            delta=TIER_LABELS[price_tier(price, day_prices)],
            delta_color="off",
        )

# ---- Facets ----
with st.sidebar:
    st.markdown("---")
    st.header("Filters")

    st.subheader("Stops")
    minimums = compute_stop_bucket_minimums(view.batch)
    for bucket in STOP_BUCKETS:
        cheapest_in_bucket = minimums.get(bucket)
        hint = f"from {_money(cheapest_in_bucket, currency)}" if cheapest_in_bucket is not None else "unavailable"
        enabled = st.checkbox(
            f"{STOP_LABELS[bucket]} · {hint}",
            value=constraints.stop_bucket_enabled(bucket),
            disabled=cheapest_in_bucket is None,
            key=f"stops_{bucket}",
        )
        constraints.set_stop_bucket(bucket, enabled)

    low, high = ranges.price_range
    if high > low:
        constraints.max_price = st.slider(
            f"Max price ({currency})", min_value=low, max_value=high,
            value=int(min(max(constraints.max_price, low), high)),
        )

    low, high = ranges.duration_range
    if high > low:
        constraints.max_duration = st.slider(
            "Max outbound duration (minutes)", min_value=low, max_value=high,
            value=int(min(max(constraints.max_duration, low), high)),
        )
        st.caption(f"Up to {format_minutes(constraints.max_duration)}")

    constraints.max_outbound_departure_minutes = st.slider(
        "Outbound departs before", min_value=0, max_value=LAST_MINUTE_OF_DAY,
        value=constraints.max_outbound_departure_minutes,
        format="%d min",
    )
    st.caption(format_time_of_day(constraints.max_outbound_departure_minutes))
    if params.is_roundtrip:
        constraints.max_return_departure_minutes = st.slider(
            "Return departs before", min_value=0, max_value=LAST_MINUTE_OF_DAY,
            value=constraints.max_return_departure_minutes,
            format="%d min",
        )
        st.caption(format_time_of_day(constraints.max_return_departure_minutes))

    st.subheader("Airlines")
    for opt in ranges.carrier_options:
        included = st.checkbox(
            f"{airline_name(opt.code, opt.name)} · from {_money(opt.min_price, currency)}",
            value=constraints.carrier_inclusion.is_included(opt.code),
            key=f"carrier_{opt.code}",
        )
        constraints.carrier_inclusion.set(opt.code, included)

    st.subheader("Bags")
    constraints.require_cabin_bag = st.checkbox("Cabin bag included", value=constraints.require_cabin_bag)
    constraints.require_checked_bag = st.checkbox("Checked bag included", value=constraints.require_checked_bag)

sort_options = [k.value for k in SortKey]
sort_key = SortKey(
    st.radio(
        "Sort by",
        sort_options,
        index=sort_options.index(st.session_state.get("sort_key", SortKey.PRICE).value),
        horizontal=True,
    )
)
st.session_state.sort_key = sort_key

st.query_params.from_dict(constraints_to_query(constraints, sort_key, ranges))

visible = session.visible(sort_key)
if view.status(visible) == NO_MATCHES:
    st.warning("No results match your filters. Adjust them to see more flights.")
    st.stop()

st.subheader(f"{len(visible)} of {len(view.batch)} flights")
st.dataframe(offers_to_frame(visible), width="stretch", hide_index=True)

selected_id = st.selectbox("Book an offer", [o.id for o in visible])
selected = next(o for o in visible if o.id == selected_id)
for link in build_booking_links(params, selected.primary_carrier):
    st.markdown(f"- [{link.label}]({link.url}) · {link.sublabel}")
