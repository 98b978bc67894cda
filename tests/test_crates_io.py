"""
Unit tests for the crates.io client.
"""

import copy
import unittest
from unittest import mock

import requests

from crate_seek.core.cancellation import CancellationHandle
from crate_seek.core.exceptions import HydrationError, SourceUnavailableError, TaskCancelled
from crate_seek.core.interfaces import SearchConfig, Sort
from crate_seek.fetcher.crates_io import CratesIoClient
from tests.fixtures.sample_data import SAMPLE_CRATE_RESPONSE, SAMPLE_SEARCH_RESPONSE


class MockResponse:
    """Mock response for requests."""

    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self.text = text
        self._json_data = json_data

    def json(self):
        if self._json_data is None:
            raise ValueError("No JSON object could be decoded")
        return self._json_data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"HTTP Error: {self.status_code}")


class TestCratesIoClient(unittest.TestCase):
    """Test the blocking crates.io calls."""

    def setUp(self):
        self.client = CratesIoClient(SearchConfig(rate_limit_interval=0.0, retry_count=0))

    def tearDown(self):
        self.client.close()

    def test_initialization(self):
        self.assertEqual(self.client.base_url, "https://crates.io/api/v1")
        self.assertIsInstance(self.client.session, requests.Session)
        self.assertIn("crate-seek", self.client.session.headers["User-Agent"])

    @mock.patch("requests.Session.get")
    def test_search_crates(self, mock_get):
        mock_get.return_value = MockResponse(json_data=SAMPLE_SEARCH_RESPONSE)

        records, total = self.client.search_crates("serde", sort=Sort.DOWNLOADS, page=2, per_page=50)

        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], "https://crates.io/api/v1/crates")
        self.assertEqual(kwargs["params"], {"q": "serde", "sort": "downloads", "page": 2, "per_page": 50})
        self.assertEqual(kwargs["timeout"], 10)

        self.assertEqual(total, 4312)
        self.assertEqual([r.name for r in records], ["serde", "serde_json", "serde_yaml"])
        self.assertTrue(records[0].exact_match)
        self.assertEqual(records[0].version, "1.0.210")
        self.assertFalse(records[0].hydrated)
        # No stable release: the version falls back to max_version
        self.assertEqual(records[2].version, "0.9.34+deprecated")

    @mock.patch("requests.Session.get")
    def test_per_page_is_clamped(self, mock_get):
        mock_get.return_value = MockResponse(json_data={"crates": [], "meta": {"total": 9}})

        _, total = self.client.search_crates("serde", per_page=0)
        self.assertEqual(mock_get.call_args.kwargs["params"]["per_page"], 1)
        self.assertEqual(total, 9)

        self.client.search_crates("serde", per_page=500)
        self.assertEqual(mock_get.call_args.kwargs["params"]["per_page"], 100)

    @mock.patch("requests.Session.get")
    def test_sort_keys(self, mock_get):
        mock_get.return_value = MockResponse(json_data={"crates": [], "meta": {"total": 0}})

        for sort, key in [
            (Sort.RELEVANCE, "relevance"),
            (Sort.NAME, "alpha"),
            (Sort.RECENT_DOWNLOADS, "recent-downloads"),
            (Sort.RECENTLY_UPDATED, "recent-updates"),
            (Sort.NEWLY_ADDED, "new"),
        ]:
            self.client.search_crates("x", sort=sort)
            self.assertEqual(mock_get.call_args.kwargs["params"]["sort"], key)

    @mock.patch("requests.Session.get")
    def test_search_http_error(self, mock_get):
        mock_get.return_value = MockResponse(status_code=503)

        with self.assertRaises(SourceUnavailableError) as context:
            self.client.search_crates("serde")
        self.assertIn("503", str(context.exception))

    @mock.patch("requests.Session.get")
    def test_search_invalid_json(self, mock_get):
        mock_get.return_value = MockResponse(text="<html>")

        with self.assertRaises(SourceUnavailableError):
            self.client.search_crates("serde")

    @mock.patch("requests.Session.get")
    def test_search_timeout_is_retried_then_reported(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout("read timed out")

        with self.assertRaises(SourceUnavailableError) as context:
            self.client.search_crates("serde")

        self.assertEqual(mock_get.call_count, 2)
        self.assertIn("timed out", str(context.exception))

    @mock.patch("requests.Session.get")
    def test_get_crate(self, mock_get):
        mock_get.return_value = MockResponse(json_data=SAMPLE_CRATE_RESPONSE)

        detail = self.client.get_crate("serde")

        self.assertEqual(mock_get.call_args.args[0], "https://crates.io/api/v1/crates/serde")
        self.assertEqual(detail.name, "serde")
        self.assertEqual(detail.version, "1.0.210")
        self.assertEqual(detail.features, ["alloc", "default", "derive", "std", "unstable"])
        self.assertEqual(detail.categories, ["Encoding", "No standard library"])
        self.assertEqual(detail.keywords, ["serde", "serialization", "no_std"])
        self.assertEqual(detail.license, "MIT OR Apache-2.0")
        self.assertEqual(detail.downloads, 450000000)

    @mock.patch("requests.Session.get")
    def test_get_crate_skips_yanked_versions(self, mock_get):
        response = copy.deepcopy(SAMPLE_CRATE_RESPONSE)
        response["versions"][0]["yanked"] = True
        response["categories"] = []
        mock_get.return_value = MockResponse(json_data=response)

        detail = self.client.get_crate("serde")

        self.assertEqual(detail.features, ["default", "std"])
        # Category slugs from the crate object are used when the expanded list is missing
        self.assertEqual(detail.categories, ["encoding", "no-std::no-alloc", "no-std"])

    @mock.patch("requests.Session.get")
    def test_get_crate_not_found(self, mock_get):
        mock_get.return_value = MockResponse(status_code=404)

        with self.assertRaises(HydrationError):
            self.client.get_crate("no-such-crate")

    @mock.patch("requests.Session.get")
    def test_get_crate_malformed(self, mock_get):
        mock_get.return_value = MockResponse(json_data={"errors": [{"detail": "Not Found"}]})

        with self.assertRaises(HydrationError):
            self.client.get_crate("serde")


class TestCratesIoClientAsync(unittest.IsolatedAsyncioTestCase):
    """Test the rate-limited async wrappers."""

    def setUp(self):
        self.client = CratesIoClient(SearchConfig(rate_limit_interval=0.0, retry_count=0))

    def tearDown(self):
        self.client.close()

    async def test_search_async(self):
        with mock.patch.object(self.client, "search_crates", return_value=([], 12)) as search:
            records, total = await self.client.search_async("serde", sort=Sort.NAME, page=3, per_page=7)

        search.assert_called_once_with("serde", Sort.NAME, 3, 7)
        self.assertEqual(total, 12)

    async def test_fetch_detail_async_propagates_errors(self):
        with mock.patch.object(self.client, "get_crate", side_effect=HydrationError("gone")):
            with self.assertRaises(HydrationError):
                await self.client.fetch_detail_async("serde")

    async def test_cancelled_before_request(self):
        handle = CancellationHandle("test")
        handle.cancel()

        with mock.patch.object(self.client, "search_crates") as search:
            with self.assertRaises(TaskCancelled):
                await self.client.search_async("serde", cancellation=handle)
            with self.assertRaises(TaskCancelled):
                await self.client.fetch_detail_async("serde", cancellation=handle)

        search.assert_not_called()

    async def test_gate_released_after_failure(self):
        with mock.patch.object(self.client, "get_crate", side_effect=HydrationError("gone")):
            with self.assertRaises(HydrationError):
                await self.client.fetch_detail_async("serde")

        self.assertFalse(self.client.gate.lock.locked())


if __name__ == "__main__":
    unittest.main()
