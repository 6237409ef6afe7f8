from datetime import date, datetime
from unittest import TestCase

from factories import example_batch, make_offer, make_params
from services.booking_links import airline_name, build_booking_links
from services.offer_bridge import offers_to_frame, offers_to_rows, seats_hint, stops_label


class OfferBridgeTests(TestCase):
    def test_row_labels(self):
        offer = make_offer("A", 120.0, stops=1, duration=275, dep_at=datetime(2026, 6, 1, 7, 5), seats=3)
        row = offers_to_rows([offer])[0]
        self.assertEqual(row["id"], "A")
        self.assertEqual(row["depart"], "07:05")
        self.assertEqual(row["duration"], "4h 35m")
        self.assertEqual(row["stops"], "1 stop")
        self.assertEqual(row["seats_hint"], "3 seats left")
        self.assertIsNone(row["return_depart"])

    def test_stops_and_seats_labels(self):
        self.assertEqual(stops_label(0), "Direct")
        self.assertEqual(stops_label(2), "2 stops")
        self.assertIsNone(seats_hint(6))
        self.assertIsNone(seats_hint(0))
        self.assertEqual(seats_hint(5), "5 seats left")

    def test_frame_keeps_order_and_drops_empty_return_columns(self):
        df = offers_to_frame(example_batch())
        self.assertEqual(list(df["id"]), ["A", "B", "C"])
        self.assertNotIn("return_depart", df.columns)

    def test_frame_with_return_leg(self):
        offer = make_offer("R", 99.0, return_dep_at=datetime(2026, 6, 8, 18, 45))
        df = offers_to_frame([offer])
        self.assertEqual(df.loc[0, "return_depart"], "18:45")

    def test_empty_frame(self):
        df = offers_to_frame([])
        self.assertTrue(df.empty)
        self.assertIn("price", df.columns)


class BookingLinksTests(TestCase):
    def test_direct_airline_first(self):
        params = make_params(return_date=date(2026, 6, 8), adults=2)
        links = build_booking_links(params, "FR")
        self.assertEqual([link.kind for link in links], ["airline", "kiwi", "google", "skyscanner"])
        self.assertEqual(links[0].label, "Ryanair")

        kiwi = links[1].url
        self.assertEqual(kiwi, "https://www.kiwi.com/en/search/results/LON/BCN/01/06/2026/08/06/2026?adults=2&children=0")
        skyscanner = links[3].url
        self.assertTrue(skyscanner.startswith("https://www.skyscanner.net/transport/flights/LON/BCN/260601/260608/?"))
        self.assertIn("cabinclass=economy", skyscanner)

    def test_unknown_airline_has_no_direct_link(self):
        links = build_booking_links(make_params(), "ZZ")
        self.assertEqual(len(links), 3)
        self.assertEqual(links[2].url, "https://www.skyscanner.net/transport/flights/LON/BCN/260601/?adults=1&children=0&cabinclass=economy")

    def test_airline_name_fallback(self):
        self.assertEqual(airline_name("U2"), "easyJet")
        self.assertEqual(airline_name("ZZ", "Zed Air"), "Zed Air")
        self.assertEqual(airline_name("ZZ"), "ZZ")
