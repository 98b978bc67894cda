"""
Base class for HTTP registry clients.

This module provides the session setup, retry policy and JSON fetching shared
by registry clients.
"""

import logging
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from urllib3.util.retry import Retry

from crate_seek.core.interfaces import SearchConfig


logger = logging.getLogger(__name__)


class HttpRegistryClient:
    """
    Base class for registry clients that speak JSON over HTTP.
    """

    def __init__(
        self,
        base_url: str,
        config: Optional[SearchConfig] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the HTTP registry client.

        Args:
            base_url: Base URL for the registry API.
            config: Configuration for the client. If None, uses default configuration.
            headers: Optional headers to include in all requests.
        """
        self.config = config or SearchConfig()
        self.base_url = base_url.rstrip('/')
        self.headers = {"User-Agent": self.config.user_agent}
        self.headers.update(headers or {})
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """
        Create a requests session with retry logic for throttling and server errors.

        Returns:
            A configured requests session.
        """
        session = requests.Session()

        retry_strategy = Retry(
            total=self.config.retry_count,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "HEAD"],
            raise_on_status=False
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update(self.headers)

        return session

    def _get_url(self, path: str) -> str:
        path = path.lstrip('/')
        return f"{self.base_url}/{path}"

    @retry(
        retry=retry_if_exception_type((
            requests.exceptions.ConnectionError,
            requests.exceptions.Timeout
        )),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        reraise=True,
    )
    def _fetch_url(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """
        Fetch a URL, retrying once on connection errors and timeouts.

        Args:
            url: URL to fetch.
            params: Optional query parameters.

        Returns:
            Response object.

        Raises:
            requests.exceptions.RequestException: If the request fails after retries.
        """
        response = self.session.get(
            url,
            params=params,
            timeout=self.config.request_timeout
        )
        response.raise_for_status()
        return response

    def _fetch_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Fetch and decode a JSON document.

        Args:
            path: Path to append to the base URL.
            params: Optional query parameters.

        Returns:
            Parsed JSON data.

        Raises:
            requests.exceptions.RequestException: If the request fails.
            ValueError: If the response is not a JSON object.
        """
        url = self._get_url(path)
        response = self._fetch_url(url, params=params)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Failed to parse JSON from {url}: {e}")
            logger.debug(f"Response content (first 500 chars): {response.text[:500]}")
            raise

        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object from {url}, got {type(data).__name__}")

        return data

    def close(self) -> None:
        self.session.close()
