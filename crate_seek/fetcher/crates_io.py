"""
crates.io registry client for crate-seek.

This module provides functionality to search the Rust crates.io registry and
to fetch the full metadata of a single crate. Every request passes through a
shared RateGate, so searches and hydrations together never exceed one request
per rate-limit interval.
"""

import asyncio
import functools
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from crate_seek.core.cancellation import CancellationHandle
from crate_seek.core.exceptions import HydrationError, SourceUnavailableError
from crate_seek.core.interfaces import MAX_PAGE_SIZE, CrateDetail, CrateRecord, SearchConfig, Sort
from crate_seek.fetcher.base import HttpRegistryClient
from crate_seek.fetcher.rate_limit import RateGate


logger = logging.getLogger(__name__)

# crates.io rejects per_page values outside this range
MIN_PER_PAGE = 1
MAX_PER_PAGE = MAX_PAGE_SIZE


class CratesIoClient(HttpRegistryClient):
    """
    Client for the crates.io HTTP API.
    """

    def __init__(self, config: Optional[SearchConfig] = None, gate: Optional[RateGate] = None):
        """
        Initialize the crates.io client.

        Args:
            config: Configuration for the client.
            gate: Rate gate to share with other clients. If None, a gate with the
                configured interval is created.
        """
        config = config or SearchConfig()
        super().__init__(
            base_url=config.registry_url,
            config=config,
            headers={"Accept": "application/json"}
        )
        self.gate = gate or RateGate(self.config.rate_limit_interval)

    def search_crates(
        self,
        term: str,
        sort: Sort = Sort.RELEVANCE,
        page: int = 1,
        per_page: int = 10
    ) -> Tuple[List[CrateRecord], int]:
        """
        Search crates on the registry.

        Args:
            term: Search term.
            sort: Sort order.
            page: 1-based page number.
            per_page: Page size, clamped to what the API accepts.

        Returns:
            The matching records (not hydrated) and the registry's total match count.

        Raises:
            SourceUnavailableError: If the request or decoding fails.
        """
        params = {
            "q": term,
            "sort": sort.api_value,
            "page": page,
            "per_page": min(max(per_page, MIN_PER_PAGE), MAX_PER_PAGE),
        }

        try:
            response = self._fetch_json("crates", params=params)
            crates = response.get("crates", [])
            total = int(response.get("meta", {}).get("total", len(crates)))
            records = [self._create_record(crate) for crate in crates]
        except requests.exceptions.Timeout as e:
            raise SourceUnavailableError(f"crates.io search timed out: {e}")
        except requests.exceptions.RequestException as e:
            raise SourceUnavailableError(f"crates.io search failed: {e}")
        except (ValueError, KeyError, TypeError) as e:
            raise SourceUnavailableError(f"Unexpected response from crates.io search: {e}")

        logger.debug(f"crates.io returned {len(records)} of {total} crates for '{term}' (page {page})")
        return records, total

    def get_crate(self, crate_id: str) -> CrateDetail:
        """
        Fetch the full metadata for a crate.

        Args:
            crate_id: Name of the crate.

        Returns:
            The crate's detail.

        Raises:
            HydrationError: If the request or decoding fails.
        """
        try:
            response = self._fetch_json(f"crates/{crate_id}")
            return self._create_detail(response)
        except requests.exceptions.RequestException as e:
            raise HydrationError(f"Failed to fetch crate details for {crate_id}: {e}")
        except (ValueError, KeyError, TypeError) as e:
            raise HydrationError(f"Unexpected crate details for {crate_id}: {e}")

    async def search_async(
        self,
        term: str,
        sort: Sort = Sort.RELEVANCE,
        page: int = 1,
        per_page: int = 10,
        cancellation: Optional[CancellationHandle] = None
    ) -> Tuple[List[CrateRecord], int]:
        """
        Rate-limited, non-blocking variant of ``search_crates``.

        Raises:
            TaskCancelled: If ``cancellation`` fired while waiting on the gate.
            SourceUnavailableError: If the request or decoding fails.
        """
        async with self.gate:
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            return await self._run_blocking(self.search_crates, term, sort, page, per_page)

    async def fetch_detail_async(
        self,
        crate_id: str,
        cancellation: Optional[CancellationHandle] = None
    ) -> CrateDetail:
        """
        Rate-limited, non-blocking variant of ``get_crate``.

        Raises:
            TaskCancelled: If ``cancellation`` fired while waiting on the gate.
            HydrationError: If the request or decoding fails.
        """
        async with self.gate:
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            return await self._run_blocking(self.get_crate, crate_id)

    async def _run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    def _create_record(self, crate: Dict[str, Any]) -> CrateRecord:
        """
        Create a CrateRecord from a search result entry.

        Args:
            crate: One element of the ``crates`` array.

        Returns:
            CrateRecord with ``hydrated`` left False.
        """
        max_version = crate["max_version"]
        max_stable_version = crate.get("max_stable_version")
        return CrateRecord(
            id=crate.get("id") or crate["name"],
            name=crate["name"],
            version=max_stable_version or max_version,
            description=crate.get("description"),
            homepage=crate.get("homepage"),
            documentation=crate.get("documentation"),
            repository=crate.get("repository"),
            max_version=max_version,
            max_stable_version=max_stable_version,
            downloads=crate.get("downloads"),
            recent_downloads=crate.get("recent_downloads"),
            created_at=crate.get("created_at"),
            updated_at=crate.get("updated_at"),
            exact_match=bool(crate.get("exact_match", False)),
        )

    def _create_detail(self, response: Dict[str, Any]) -> CrateDetail:
        """
        Create a CrateDetail from a ``crates/{name}`` response.

        Features are taken from the newest version that declares any.
        """
        crate = response["crate"]
        versions = response.get("versions") or []

        features: List[str] = []
        for version in versions:
            if version.get("yanked"):
                continue
            if version.get("features"):
                features = sorted(version["features"].keys())
                break

        categories = [
            category.get("category") or category.get("id")
            for category in response.get("categories") or []
        ]
        if not categories:
            categories = list(crate.get("categories") or [])

        keywords = list(crate.get("keywords") or [])
        license_name = next((v.get("license") for v in versions if v.get("license")), None)

        return CrateDetail(
            id=crate.get("id") or crate["name"],
            name=crate["name"],
            max_version=crate["max_version"],
            max_stable_version=crate.get("max_stable_version"),
            description=crate.get("description"),
            homepage=crate.get("homepage"),
            documentation=crate.get("documentation"),
            repository=crate.get("repository"),
            downloads=crate.get("downloads"),
            recent_downloads=crate.get("recent_downloads"),
            created_at=crate.get("created_at"),
            updated_at=crate.get("updated_at"),
            features=features,
            categories=[c for c in categories if c],
            keywords=keywords,
            license=license_name,
            exact_match=bool(crate.get("exact_match", False)),
        )
