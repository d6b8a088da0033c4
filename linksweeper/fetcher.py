"""HTTP GET with per-domain headers, per-attempt deadline and fixed-delay retries."""

import asyncio
import threading
from typing import Callable, Optional
from urllib.parse import urlparse

import requests

from .config import CheckerConfig
from .events import EventBus, Retry

EXHAUSTED_MESSAGE = "Failed after multiple retries"

BodyPredicate = Callable[[requests.Response], bool]


class FetchError(Exception):
    """A URL could not be fetched."""


class RetriesExhaustedError(FetchError):
    """Every attempt to fetch a URL failed with a transport error."""


class Fetcher:
    """Fetches URLs through requests sessions.

    Blocking requests calls run in worker threads so many fetches can be in
    flight on one event loop. Each worker thread gets its own session unless
    one is passed in, in which case that session is shared by all threads
    and must tolerate concurrent use.

    Only transport failures (connection errors, timeouts, invalid responses)
    are retried; any HTTP status, including 4xx and 5xx, is returned to the
    caller as a response. A URL that requests refuses to prepare fails at
    once without retries.
    """

    def __init__(
        self,
        config: CheckerConfig,
        bus: EventBus,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.bus = bus
        self.session = session
        self._local = threading.local()

    async def fetch(
        self,
        url: str,
        parent_url: Optional[str] = None,
        read_body: Optional[BodyPredicate] = None,
    ) -> requests.Response:
        """GET a URL, retrying transport failures.

        Args:
            url: Absolute URL to request.
            parent_url: Page the URL was found on, reported in retry events.
            read_body: Called with each response; when it returns True the
                body is downloaded within the same attempt's deadline.

        Returns:
            The response of the first attempt that completed. The connection
            is already released; the body is available through .text only
            if read_body asked for it.

        Raises:
            RetriesExhaustedError: If all attempts failed.
            FetchError: If the URL cannot be requested at all.
        """
        max_attempts = self.config.attempts
        delay = self.config.retry_delay / 1000
        headers = self.config.headers_for(urlparse(url).hostname or "")
        last_error: Optional[Exception] = None

        for attempt in range(1, max_attempts + 1):
            try:
                return await self._attempt(url, headers, read_body)
            except ValueError as e:
                # InvalidURL and urllib3's LocationParseError; another attempt fails the same way
                raise FetchError(str(e) or EXHAUSTED_MESSAGE) from e
            except requests.exceptions.RequestException as e:
                last_error = e
                if attempt < max_attempts:
                    self.bus.emit(Retry(
                        url=url,
                        attempt=attempt,
                        error=str(e),
                        parent_url=parent_url,
                    ))
                    await asyncio.sleep(delay)

        message = str(last_error) if last_error is not None else ""
        raise RetriesExhaustedError(message or EXHAUSTED_MESSAGE)

    async def _attempt(
        self,
        url: str,
        headers: dict[str, str],
        read_body: Optional[BodyPredicate],
    ) -> requests.Response:
        """Run one request in a worker thread, abandoning it at the deadline."""
        opened: list[requests.Response] = []
        abandoned = threading.Event()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._get, url, headers, read_body, opened, abandoned),
                self.config.timeout / 1000,
            )
        except asyncio.TimeoutError:
            abandoned.set()
            for response in opened:
                response.close()
            raise requests.exceptions.Timeout(
                f"Request timed out after {self.config.timeout} ms"
            ) from None

    def _get(
        self,
        url: str,
        headers: dict[str, str],
        read_body: Optional[BodyPredicate],
        opened: list[requests.Response],
        abandoned: threading.Event,
    ) -> requests.Response:
        response = self.session_for_thread().get(
            url,
            headers=headers,
            timeout=self.config.timeout / 1000,
            allow_redirects=True,
            stream=True,
        )
        opened.append(response)
        if abandoned.is_set():
            response.close()
            return response

        try:
            if read_body is not None and read_body(response):
                response.content  # Downloads and caches the body
        finally:
            response.close()
        return response

    def session_for_thread(self) -> requests.Session:
        """Return the shared session, or this worker thread's own one."""
        if self.session is not None:
            return self.session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session
