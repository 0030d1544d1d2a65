"""Abstract base class for page fetchers with retry logic and throttling."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Generic, Optional, Tuple, TypeVar

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config.settings import TrackerConfig
from .dom import DocumentNode, parse_document

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Realistic browser headers; the source site rejects bare clients
DEFAULT_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
    'Referer': 'https://www.vesselfinder.com/',
    'Cache-Control': 'max-age=0',
}


class FetchError(Exception):
    """Exception raised when a page cannot be fetched."""
    def __init__(self, url: str, message: str, original_error: Optional[Exception] = None):
        self.url = url
        self.message = message
        self.original_error = original_error
        super().__init__(f"{url}: {message}")


class Throttle:
    """Enforces a minimum interval between consecutive requests.

    One instance is shared by every fetcher in a run, so the interval holds
    across listing, detail and arrival requests to the same site.
    """

    def __init__(self, min_interval: float, clock=time.monotonic, sleep=time.sleep):
        self.min_interval = max(0.0, float(min_interval))
        self._clock = clock
        self._sleep = sleep
        self._last_request: Optional[float] = None

    def wait(self) -> None:
        """Block until the interval since the previous request has passed."""
        if self._last_request is not None and self.min_interval > 0:
            remaining = self.min_interval - (self._clock() - self._last_request)
            if remaining > 0:
                logger.debug(f"Throttling for {remaining:.2f}s")
                self._sleep(remaining)
        self._last_request = self._clock()


def build_session() -> requests.Session:
    """HTTP session with a single transport-level retry for gateway errors."""
    retry = Retry(total=1, allowed_methods=["GET"], backoff_factor=1, status_forcelist=[502, 503, 504])
    session = requests.Session()
    session.mount("https://", HTTPAdapter(max_retries=retry))
    session.mount("http://", HTTPAdapter(max_retries=retry))
    session.headers.update(DEFAULT_HEADERS)
    return session


class BaseFetcher(ABC, Generic[T]):
    """Abstract base for page fetchers with built-in retry logic."""

    def __init__(
        self,
        config: TrackerConfig,
        session: Optional[requests.Session] = None,
        throttle: Optional[Throttle] = None,
    ):
        self.config = config
        self.session = session if session is not None else build_session()
        self.throttle = throttle if throttle is not None else Throttle(config.request_delay_seconds)

    @property
    @abstractmethod
    def timeout(self) -> float:
        """Per-request timeout in seconds."""

    @abstractmethod
    def _fetch_impl(self, url: str) -> T:
        """
        Internal fetch implementation - to be overridden by subclasses.

        Raises:
            FetchError on network failure
        """

    def get_document(self, url: str) -> DocumentNode:
        """
        GET a page once (throttled) and parse it.

        Raises:
            FetchError: On timeout, connection error or non-2xx status
        """
        self.throttle.wait()
        logger.debug(f"GET {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(url, f"fetch failed: {e}", e) from e
        return parse_document(response.text)

    def fetch(self, url: str) -> Tuple[Optional[T], Optional[str]]:
        """
        Fetch with automatic retries and exponential backoff.

        Returns:
            Tuple of (result, error_message)
            - On success: (result, None)
            - On failure: (None, error_message)
        """
        attempts = max(1, self.config.max_retries)
        backoff = self.config.initial_backoff_seconds
        last_error = None

        for attempt in range(1, attempts + 1):
            try:
                return self._fetch_impl(url), None
            except FetchError as e:
                last_error = str(e)
                if attempt < attempts:
                    logger.warning(f"Retry {attempt}/{attempts} for {url} in {backoff}s: {e.message}")
                    time.sleep(backoff)
                    backoff *= self.config.backoff_multiplier
                else:
                    logger.error(f"Failed after {attempts} attempts for {url}: {e.message}")

        return None, last_error
