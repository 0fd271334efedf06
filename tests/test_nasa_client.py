import unittest
from datetime import date

import requests

from impactlab.backend.asteroids import AliasLookup
from impactlab.backend.errors import MalformedUpstreamError
from impactlab.backend.nasa_client import NASAAPIError, NASAClient


class FakeResponse:

    def __init__(self, payload=None, error=None, json_error=None):
        self._payload = payload
        self._error = error
        self._json_error = json_error

    def raise_for_status(self):
        if self._error is not None:
            raise self._error

    def json(self):
        if self._json_error is not None:
            raise self._json_error
        return self._payload


class FakeSession:

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _neo(neo_id, name, approach_date=None, diameter=(100.0, 200.0)):
    entry = {
        "id": neo_id,
        "name": name,
        "absolute_magnitude_h": 20.5,
        "estimated_diameter": {
            "meters": {"estimated_diameter_min": diameter[0], "estimated_diameter_max": diameter[1]}
        },
        "is_potentially_hazardous_asteroid": False,
        "close_approach_data": [],
    }
    if approach_date:
        entry["close_approach_data"] = [
            {
                "close_approach_date": approach_date,
                "relative_velocity": {"kilometers_per_second": "15.2"},
                "orbiting_body": "Earth",
            }
        ]
    return entry


class TestBrowse(unittest.TestCase):

    def test_browse_page(self):
        session = FakeSession(
            FakeResponse(
                {
                    "near_earth_objects": [_neo("2000433", "433 Eros (A898 PA)"), _neo("2099942", "99942 Apophis")],
                    "page": {"number": 3, "size": 2, "total_pages": 10, "total_elements": 20},
                }
            )
        )
        client = NASAClient("KEY", session=session, aliases=AliasLookup({"99942 Apophis": "Apophis"}))
        page = client.browse(page=3, size=2)

        self.assertEqual([record.name for record in page.records], ["Eros", "Apophis"])
        self.assertEqual(page.page, 3)
        self.assertEqual(page.total_pages, 10)
        self.assertEqual(page.total_items, 20)
        self.assertTrue(page.has_more)
        self.assertIn("page 4 of 10", page.summary)
        self.assertEqual(session.calls[0]["params"], {"api_key": "KEY", "page": 3, "size": 2})
        self.assertTrue(session.calls[0]["url"].endswith("/neo/browse"))

    def test_browse_clamps_paging(self):
        session = FakeSession(FakeResponse({"near_earth_objects": []}))
        client = NASAClient("", session=session)
        page = client.browse(page=-4, size=500)
        self.assertEqual(session.calls[0]["params"], {"api_key": "DEMO_KEY", "page": 0, "size": 100})
        self.assertEqual(page.records, [])
        self.assertFalse(page.has_more)

    def test_browse_rejects_bad_shape(self):
        client = NASAClient("KEY", session=FakeSession(FakeResponse({"near_earth_objects": {"a": 1}})))
        with self.assertRaises(MalformedUpstreamError):
            client.browse()


class TestFeed(unittest.TestCase):

    def test_feed_sorted_and_paged(self):
        payload = {
            "near_earth_objects": {
                "2025-01-03": [_neo("3", "(2025 AC)", "2025-01-03")],
                "2025-01-01": [_neo("1", "(2025 AA)", "2025-01-01"), _neo("2", "(2025 AB)")],
            }
        }
        session = FakeSession(FakeResponse(payload))
        client = NASAClient("KEY", session=session)
        page = client.feed(start_date=date(2025, 1, 1), end_date=date(2025, 1, 3), page=0, size=2)

        self.assertEqual([record.id for record in page.records], ["1", "2"])
        self.assertEqual(page.records[1].approach_date_iso, "2025-01-01")
        self.assertEqual(page.total_items, 3)
        self.assertEqual(page.total_pages, 2)
        self.assertTrue(page.has_more)
        self.assertEqual(
            session.calls[0]["params"],
            {"api_key": "KEY", "start_date": "2025-01-01", "end_date": "2025-01-03"},
        )

    def test_feed_rejects_bad_shape(self):
        client = NASAClient("KEY", session=FakeSession(FakeResponse({"near_earth_objects": []})))
        with self.assertRaises(MalformedUpstreamError):
            client.feed(start_date=date(2025, 1, 1))


class TestLookup(unittest.TestCase):

    def test_fetch_neo_is_cached(self):
        session = FakeSession(FakeResponse(_neo("2099942", "99942 Apophis")))
        client = NASAClient("KEY", session=session)
        first = client.fetch_neo("2099942")
        second = client.fetch_neo("2099942")
        self.assertIs(first, second)
        self.assertEqual(len(session.calls), 1)

    def test_neo_cache_is_bounded(self):
        session = FakeSession(*(FakeResponse(_neo(str(index), f"({index})")) for index in range(4)))
        client = NASAClient("KEY", session=session, cache_size=2)
        client.fetch_neo("0")
        client.fetch_neo("1")
        client.fetch_neo("0")
        client.fetch_neo("2")
        self.assertEqual(list(client._neo_cache), ["0", "2"])
        client.fetch_neo("1")
        self.assertEqual(len(session.calls), 4)
        self.assertEqual(len(client._neo_cache), 2)

    def test_fetch_orbit(self):
        neo = _neo("2099942", "99942 Apophis")
        neo["orbital_data"] = {
            "semi_major_axis": "0.9224",
            "eccentricity": "0.1914",
            "inclination": "3.339",
            "ascending_node_longitude": "203.96",
            "perihelion_argument": "126.6",
            "mean_anomaly": "142.4",
            "epoch_osculation": "2460600.5",
            "minimum_orbit_intersection": "0.000196",
            "orbit_class": {"orbit_class_type": "ATE"},
        }
        client = NASAClient("KEY", session=FakeSession(FakeResponse(neo)))
        elements, metadata = client.fetch_orbit("2099942")
        self.assertEqual(elements.semi_major_axis_au, 0.9224)
        self.assertEqual(metadata["moid_au"], 0.000196)
        self.assertEqual(metadata["orbit_class"], "ATE")
        self.assertEqual(metadata["source"], "nasa")

    def test_fetch_orbit_without_elements(self):
        client = NASAClient("KEY", session=FakeSession(FakeResponse(_neo("1", "(2025 AA)"))))
        with self.assertRaises(MalformedUpstreamError):
            client.fetch_orbit("1")


class TestErrors(unittest.TestCase):

    def test_network_failure(self):
        client = NASAClient("KEY", session=FakeSession(requests.ConnectionError("offline")))
        with self.assertRaises(NASAAPIError):
            client.browse()

    def test_http_error(self):
        response = FakeResponse(error=requests.HTTPError("429 Too Many Requests"))
        client = NASAClient("KEY", session=FakeSession(response))
        with self.assertRaises(NASAAPIError):
            client.fetch_neo("1")

    def test_non_json_and_non_object(self):
        client = NASAClient("KEY", session=FakeSession(FakeResponse(json_error=ValueError("bad json"))))
        with self.assertRaises(MalformedUpstreamError):
            client.browse()
        client = NASAClient("KEY", session=FakeSession(FakeResponse(["not", "an", "object"])))
        with self.assertRaises(MalformedUpstreamError):
            client.browse()


if __name__ == "__main__":
    unittest.main()
