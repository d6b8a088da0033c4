"""Core link-check engine - work queue, bounded concurrency, deduplication."""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Optional, Union

import requests

from .config import CheckerConfig
from .events import (
    BrokenLink,
    Complete,
    Event,
    EventBus,
    EventKind,
    LinkError,
    LinkRedirect,
    LinkStart,
    LinkSuccess,
    Listener,
    Progress,
    Start,
    Stopped,
)
from .fetcher import FetchError, Fetcher
from .html_links import extract_links
from .ignore import IgnoreFilter
from .url_resolver import is_same_origin, validate_seed_url


class AlreadyRunningError(RuntimeError):
    """Raised when run() is called on a checker that is already running."""


@dataclass
class QueueItem:
    """A pending link check."""

    url: str
    parent_url: Optional[str] = None
    is_recursive: bool = False


@dataclass
class CheckResult:
    """Outcome of a run: every URL checked and the ones found broken."""

    links_visited: list[str] = field(default_factory=list)
    broken_links: list[BrokenLink] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.broken_links


@dataclass
class RunState:
    """Everything one run mutates."""

    running: bool = True
    queue: deque[QueueItem] = field(default_factory=deque)
    visited: dict[str, None] = field(default_factory=dict)  # Used as an insertion-ordered set
    broken: list[BrokenLink] = field(default_factory=list)
    active: set[asyncio.Task] = field(default_factory=set)

    def result(self) -> CheckResult:
        return CheckResult(links_visited=list(self.visited), broken_links=list(self.broken))


def _is_html(response: requests.Response) -> bool:
    return "text/html" in response.headers.get("Content-Type", "").lower()


class LinkChecker:
    """Recursive link checker with bounded concurrency.

    Starting from a seed URL, checks that every linked URL responds with a
    2xx status (or a redirect). Pages on the same origin as the page that
    linked to them are parsed for further links; links to other origins
    are only checked.

    Each URL is marked visited before its check starts, so a URL that is
    queued several times (for example because many pages link to it) is
    fetched at most once per run. All queue and set mutation happens on the
    event loop thread; only the blocking HTTP calls run in worker threads.

    Each run works on its own RunState. Checks still finishing from a
    stopped run only touch that run's state, and their events are dropped
    once a newer run has started.

    Progress is reported through events; subscribe with on().
    """

    def __init__(
        self,
        config: Optional[CheckerConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config if config is not None else CheckerConfig()
        self.events = EventBus()
        self.ignore = IgnoreFilter(self.config.ignore_links)
        self.fetcher = Fetcher(self.config, self.events, session=session)
        self._state = RunState(running=False)

    def on(self, kind: Union[EventKind, str], listener: Listener) -> Listener:
        """Subscribe to an event kind, e.g. checker.on("link:error", print)."""
        return self.events.on(kind, listener)

    @property
    def is_running(self) -> bool:
        return self._state.running

    @property
    def queue(self) -> deque[QueueItem]:
        return self._state.queue

    @property
    def visited(self) -> frozenset[str]:
        return frozenset(self._state.visited)

    @property
    def broken_links(self) -> tuple[BrokenLink, ...]:
        return tuple(self._state.broken)

    @property
    def active_count(self) -> int:
        return len(self._state.active)

    async def run(self, url: str) -> CheckResult:
        """Check every link reachable from url.

        Args:
            url: Seed URL. It is always parsed for links, whatever its origin.

        Returns:
            The visited URLs and broken links. A stopped run returns what
            was found up to the point it was stopped.

        Raises:
            AlreadyRunningError: If this checker is already running.
            InvalidURLError: If url is not an absolute http(s) URL.
        """
        if self._state.running:
            raise AlreadyRunningError(
                "Link checker is already running. Call stop() first or create a new instance."
            )
        seed_url = validate_seed_url(url)

        state = self._state = RunState()

        try:
            self.events.emit(Start(url=seed_url))
            state.queue.append(QueueItem(url=seed_url, is_recursive=True))
            await self._process_queue(state)

            # A stop() during the run lets in-flight checks finish but
            # drops anything they discovered
            if state.active:
                try:
                    await asyncio.gather(*state.active)
                except Exception:
                    await self._abort(state)
                    raise
                state.queue.clear()

            result = state.result()
            if state.running:
                self.events.emit(Complete(
                    links_visited=result.links_visited,
                    broken_links=result.broken_links,
                ))
            return result
        finally:
            state.running = False

    def stop(self) -> None:
        """Stop the current run. Checks already in flight are not aborted."""
        if self._state.running:
            self._state.running = False
            self._state.queue.clear()
            self.events.emit(Stopped())

    async def _process_queue(self, state: RunState) -> None:
        while state.running and (state.queue or state.active):
            while state.running and state.queue and len(state.active) < self.config.concurrency:
                item = state.queue.popleft()

                if item.url in state.visited or self.ignore.matches(item.url):
                    continue

                # Claim the URL before the check is scheduled
                state.visited[item.url] = None

                task = asyncio.create_task(self._check_url(state, item))
                state.active.add(task)
                task.add_done_callback(state.active.discard)

            if state.active:
                done, _ = await asyncio.wait(state.active, return_when=asyncio.FIRST_COMPLETED)
                failure: Optional[BaseException] = None
                for task in done:
                    state.active.discard(task)
                    # Retrieve every exception, re-raise the first
                    error = None if task.cancelled() else task.exception()
                    if failure is None:
                        failure = error
                if failure is not None:
                    await self._abort(state)
                    raise failure

    async def _abort(self, state: RunState) -> None:
        """Cancel the remaining checks of a failed run and wait for them."""
        state.running = False
        state.queue.clear()
        pending = list(state.active)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    def _emit(self, state: RunState, event: Event) -> None:
        if state is self._state:
            self.events.emit(event)

    async def _check_url(self, state: RunState, item: QueueItem) -> None:
        """Check a single URL and queue the links found on it."""
        if not state.running:
            return

        url, parent_url = item.url, item.parent_url
        self._emit(state, LinkStart(url=url, parent_url=parent_url))

        def wants_body(response: requests.Response) -> bool:
            return item.is_recursive and 200 <= response.status_code < 300 and _is_html(response)

        try:
            response = await self.fetcher.fetch(url, parent_url, read_body=wants_body)
            status_code = response.status_code

            if 200 <= status_code < 300:
                self._emit(state, LinkSuccess(url=url, status_code=status_code, parent_url=parent_url))
                if wants_body(response):
                    self._queue_links(state, response.text, response.url, url)
            elif response.history:
                self._emit(state, LinkRedirect(from_url=url, to_url=response.url, parent_url=parent_url))
            else:
                self._emit(state, LinkError(url=url, status_code=status_code, parent_url=parent_url))
                state.broken.append(BrokenLink(url=url, reason=f"Status code: {status_code}", parent_url=parent_url))

        except FetchError as e:
            self._emit(state, LinkError(url=url, error=str(e), parent_url=parent_url))
            state.broken.append(BrokenLink(url=url, reason=f"Error: {e}", parent_url=parent_url))

        self._emit(state, Progress(checked=len(state.visited), broken=len(state.broken)))

    def _queue_links(self, state: RunState, html: str, page_url: str, checked_url: str) -> None:
        """Queue the unvisited links of a page.

        Args:
            state: Run the page belongs to.
            html: Page body.
            page_url: Final URL of the response, used to resolve relative
                links and to decide which links share the page's origin.
            checked_url: URL that was checked, recorded as the links' parent.
        """
        if not state.running:
            return

        for link in extract_links(html, page_url):
            if link in state.visited or self.ignore.matches(link):
                continue
            state.queue.append(QueueItem(
                url=link,
                parent_url=checked_url,
                is_recursive=is_same_origin(link, page_url),
            ))


def check_links(url: str, config: Optional[CheckerConfig] = None) -> CheckResult:
    """Run a LinkChecker to completion from synchronous code."""
    return asyncio.run(LinkChecker(config).run(url))
