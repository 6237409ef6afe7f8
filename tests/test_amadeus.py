from datetime import date, datetime
from unittest import TestCase
from unittest.mock import Mock, patch

import requests

from core.errors import ConfigurationError, NetworkError, NoResultsError, UpstreamRejectedError
from core.session import FAILED, SearchSession
from providers.amadeus_provider import AmadeusProvider, parse_flight_offers
from services.amadeus_client import AmadeusClient
from services.settings import Settings
from services.token_cache import TokenCache
from factories import make_params

SETTINGS = Settings(amadeus_client_id="id", amadeus_client_secret="secret")


def _segment(origin, dest, dep, arr, carrier, number, duration):
    return {
        "departure": {"iataCode": origin, "at": dep},
        "arrival": {"iataCode": dest, "at": arr},
        "carrierCode": carrier,
        "number": number,
        "duration": duration,
    }


SAMPLE_PAYLOAD = {
    "data": [
        {
            "id": "1",
            "numberOfBookableSeats": 4,
            "validatingAirlineCodes": ["FR"],
            "price": {"currency": "GBP", "total": "119.00", "grandTotal": "120.50"},
            "itineraries": [
                {
                    "duration": "PT2H10M",
                    "segments": [
                        _segment("STN", "BCN", "2026-06-01T06:30:00", "2026-06-01T09:40:00", "FR", "9012", "PT2H10M"),
                    ],
                },
                {
                    "duration": "PT2H5M",
                    "segments": [
                        _segment("BCN", "STN", "2026-06-08T21:15:00", "2026-06-08T22:20:00", "FR", "9013", "PT2H5M"),
                    ],
                },
            ],
        },
        {
            "id": "2",
            "numberOfBookableSeats": 9,
            "validatingAirlineCodes": [],
            "price": {"currency": "GBP", "total": "88.10"},
            "itineraries": [
                {
                    "duration": "PT5H",
                    "segments": [
                        _segment("LGW", "AMS", "2026-06-01T11:00:00", "2026-06-01T13:10:00", "U2", "8851", "PT1H10M"),
                        _segment("AMS", "BCN", "2026-06-01T14:20:00", "2026-06-01T16:00:00", "U2", "8852", "PT2H"),
                    ],
                },
            ],
        },
    ],
    "dictionaries": {"carriers": {"FR": "RYANAIR", "U2": "EASYJET"}},
}


def _response(status=200, payload=None):
    resp = Mock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.json.return_value = payload if payload is not None else {}
    resp.text = str(payload)
    return resp


TOKEN = _response(200, {"access_token": "tok-1", "expires_in": 1799})


class ParseFlightOffersTests(TestCase):
    def test_offer_fields(self):
        offers = parse_flight_offers(SAMPLE_PAYLOAD)
        first, second = offers

        self.assertEqual(first.id, "1")
        self.assertEqual(first.total_price, 120.50)
        self.assertEqual(first.remaining_seats, 4)
        self.assertEqual(first.primary_carrier, "FR")
        self.assertEqual(first.carrier_name, "RYANAIR")
        self.assertEqual(len(first.itineraries), 2)
        self.assertEqual(first.outbound_duration, 130)
        self.assertEqual(first.outbound.departure_at, datetime(2026, 6, 1, 6, 30))
        self.assertEqual(first.inbound.direction, "RETURN")

    def test_fallbacks(self):
        second = parse_flight_offers(SAMPLE_PAYLOAD)[1]
        # price.total when grandTotal is missing, first segment carrier when no validating code
        self.assertEqual(second.total_price, 88.10)
        self.assertEqual(second.primary_carrier, "U2")
        self.assertEqual(second.outbound_stops, 1)
        self.assertEqual(second.outbound.segments[0].duration_minutes, 70)

    def test_empty_payload(self):
        self.assertEqual(parse_flight_offers({}), [])


class AmadeusClientTests(TestCase):
    def test_requires_credentials(self):
        with self.assertRaises(ConfigurationError):
            AmadeusClient(Settings())

    @patch("services.amadeus_client.requests.get")
    @patch("services.amadeus_client.requests.post")
    def test_token_reused_from_cache(self, mock_post, mock_get):
        mock_post.return_value = TOKEN
        mock_get.return_value = _response(200, SAMPLE_PAYLOAD)
        client = AmadeusClient(SETTINGS, token_cache=TokenCache())

        client.get("/v2/shopping/flight-offers", {"max": 1})
        client.get("/v2/shopping/flight-offers", {"max": 1})

        mock_post.assert_called_once()
        headers = mock_get.call_args.kwargs["headers"]
        self.assertEqual(headers, {"Authorization": "Bearer tok-1"})
        self.assertTrue(mock_get.call_args.args[0].startswith("https://test.api.amadeus.com"))

    @patch("services.amadeus_client.requests.get")
    @patch("services.amadeus_client.requests.post")
    def test_unauthorized_refreshes_token_once(self, mock_post, mock_get):
        mock_post.side_effect = [TOKEN, _response(200, {"access_token": "tok-2", "expires_in": 1799})]
        mock_get.side_effect = [_response(401, {}), _response(200, SAMPLE_PAYLOAD)]
        client = AmadeusClient(SETTINGS, token_cache=TokenCache())

        payload = client.get("/v2/shopping/flight-offers", {})

        self.assertEqual(payload, SAMPLE_PAYLOAD)
        self.assertEqual(mock_post.call_count, 2)
        self.assertEqual(mock_get.call_args.kwargs["headers"], {"Authorization": "Bearer tok-2"})

    @patch("services.amadeus_client.requests.get")
    @patch("services.amadeus_client.requests.post")
    def test_upstream_error_detail(self, mock_post, mock_get):
        mock_post.return_value = TOKEN
        mock_get.return_value = _response(
            400, {"errors": [{"status": 400, "detail": "Invalid airport code", "title": "INVALID FORMAT"}]}
        )
        client = AmadeusClient(SETTINGS, token_cache=TokenCache())

        with self.assertRaises(UpstreamRejectedError) as ctx:
            client.get("/v2/shopping/flight-offers", {})
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.detail, "Invalid airport code")
        self.assertEqual(ctx.exception.kind, "upstream-rejected")

    @patch("services.amadeus_client.requests.post")
    def test_auth_failure(self, mock_post):
        mock_post.return_value = _response(401, {"error": "invalid_client"})
        client = AmadeusClient(SETTINGS, token_cache=TokenCache())
        with self.assertRaises(UpstreamRejectedError):
            client.get("/v2/shopping/flight-offers", {})

    @patch("services.amadeus_client.requests.get")
    @patch("services.amadeus_client.requests.post")
    def test_token_response_without_access_token(self, mock_post, mock_get):
        mock_post.return_value = _response(200, {})
        client = AmadeusClient(SETTINGS, token_cache=TokenCache())
        with self.assertRaises(UpstreamRejectedError) as ctx:
            client.get("/v2/shopping/flight-offers", {})
        self.assertEqual(ctx.exception.status_code, 200)
        mock_get.assert_not_called()

    @patch("services.amadeus_client.requests.post")
    def test_token_response_not_json(self, mock_post):
        resp = _response(200)
        resp.json.side_effect = ValueError("Expecting value")
        mock_post.return_value = resp
        client = AmadeusClient(SETTINGS, token_cache=TokenCache())
        with self.assertRaises(UpstreamRejectedError):
            client.get("/v2/shopping/flight-offers", {})

    @patch("services.amadeus_client.requests.post")
    def test_broken_token_response_reaches_session_as_failure(self, mock_post):
        mock_post.return_value = _response(200, {"token_type": "Bearer"})
        provider = AmadeusProvider(AmadeusClient(SETTINGS, token_cache=TokenCache()))
        view = SearchSession().run(provider, make_params())
        self.assertEqual(view.status(), FAILED)
        self.assertEqual(view.error.kind, "upstream-rejected")

    @patch("services.amadeus_client.requests.get")
    @patch("services.amadeus_client.requests.post")
    def test_network_error(self, mock_post, mock_get):
        mock_post.return_value = TOKEN
        mock_get.side_effect = requests.ConnectionError("connection refused")
        client = AmadeusClient(SETTINGS, token_cache=TokenCache())
        with self.assertRaises(NetworkError):
            client.get("/v2/shopping/flight-offers", {})


class AmadeusProviderTests(TestCase):
    def setUp(self):
        self.client = Mock()
        self.provider = AmadeusProvider(client=self.client)

    def test_query(self):
        params = make_params(return_date=date(2026, 6, 8), adults=2, children=1,
                             travel_class="premium economy", non_stop=True)
        query = self.provider.build_query(params)
        self.assertEqual(query, {
            "originLocationCode": "LON",
            "destinationLocationCode": "BCN",
            "departureDate": "2026-06-01",
            "returnDate": "2026-06-08",
            "adults": 2,
            "children": 1,
            "travelClass": "PREMIUM_ECONOMY",
            "nonStop": "true",
            "currencyCode": "GBP",
            "max": 30,
        })

    def test_children_omitted_when_zero(self):
        self.assertNotIn("children", self.provider.build_query(make_params()))

    def test_search_returns_offers_in_upstream_order(self):
        self.client.get.return_value = SAMPLE_PAYLOAD
        offers = self.provider.search(make_params())
        self.assertEqual([o.id for o in offers], ["1", "2"])
        self.assertEqual(self.client.get.call_args.args[0], "/v2/shopping/flight-offers")

    def test_no_results(self):
        self.client.get.return_value = {"data": []}
        with self.assertRaises(NoResultsError):
            self.provider.search(make_params())

    def test_flexible_dates_dedup_and_unique_ids(self):
        self.client.get.return_value = SAMPLE_PAYLOAD
        offers = self.provider.search(make_params(return_date=date(2026, 6, 8), flexible_days=1))

        # three identical upstream answers collapse to two physical itineraries
        self.assertEqual(self.client.get.call_count, 3)
        self.assertEqual(len(offers), 2)
        self.assertEqual(len({o.id for o in offers}), 2)

        dates = [c.args[1]["departureDate"] for c in self.client.get.call_args_list]
        returns = [c.args[1]["returnDate"] for c in self.client.get.call_args_list]
        self.assertEqual(dates, ["2026-05-31", "2026-06-01", "2026-06-02"])
        self.assertEqual(returns, ["2026-06-07", "2026-06-08", "2026-06-09"])
