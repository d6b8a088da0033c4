"""Notifications published by the link checker while it runs.

Each notification is a frozen dataclass tagged with an EventKind. Listeners
subscribe per kind on an EventBus and are called synchronously, in the order
they were registered, from the event loop thread running the check.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, ClassVar, Optional, Union


class EventKind(str, Enum):
    START = "start"
    COMPLETE = "complete"
    STOPPED = "stopped"
    LINK_START = "link:start"
    LINK_SUCCESS = "link:success"
    LINK_REDIRECT = "link:redirect"
    LINK_ERROR = "link:error"
    PROGRESS = "progress"
    RETRY = "retry"


@dataclass(frozen=True)
class BrokenLink:
    """A checked URL that failed, and the page that linked to it."""

    url: str
    reason: str
    parent_url: Optional[str] = None


@dataclass(frozen=True)
class Start:
    kind: ClassVar[EventKind] = EventKind.START
    url: str


@dataclass(frozen=True)
class Complete:
    kind: ClassVar[EventKind] = EventKind.COMPLETE
    links_visited: list[str] = field(default_factory=list)
    broken_links: list[BrokenLink] = field(default_factory=list)


@dataclass(frozen=True)
class Stopped:
    kind: ClassVar[EventKind] = EventKind.STOPPED


@dataclass(frozen=True)
class LinkStart:
    kind: ClassVar[EventKind] = EventKind.LINK_START
    url: str
    parent_url: Optional[str] = None


@dataclass(frozen=True)
class LinkSuccess:
    kind: ClassVar[EventKind] = EventKind.LINK_SUCCESS
    url: str
    status_code: int
    parent_url: Optional[str] = None


@dataclass(frozen=True)
class LinkRedirect:
    kind: ClassVar[EventKind] = EventKind.LINK_REDIRECT
    from_url: str
    to_url: str
    parent_url: Optional[str] = None


@dataclass(frozen=True)
class LinkError:
    """A link failed: status_code is set for HTTP failures, error for transport ones."""

    kind: ClassVar[EventKind] = EventKind.LINK_ERROR
    url: str
    status_code: Optional[int] = None
    error: Optional[str] = None
    parent_url: Optional[str] = None


@dataclass(frozen=True)
class Progress:
    kind: ClassVar[EventKind] = EventKind.PROGRESS
    checked: int
    broken: int


@dataclass(frozen=True)
class Retry:
    kind: ClassVar[EventKind] = EventKind.RETRY
    url: str
    attempt: int
    error: str
    parent_url: Optional[str] = None


Event = Union[
    Start, Complete, Stopped,
    LinkStart, LinkSuccess, LinkRedirect, LinkError,
    Progress, Retry,
]

Listener = Callable[[Event], None]


class EventBus:
    """Multi-subscriber publisher keyed by EventKind."""

    def __init__(self):
        self._listeners: dict[EventKind, list[Listener]] = defaultdict(list)

    def on(self, kind: Union[EventKind, str], listener: Listener) -> Listener:
        """Register a listener for one kind of event.

        Args:
            kind: EventKind or its channel name (e.g. "link:error").
            listener: Callable receiving the event dataclass.

        Returns:
            The listener, unchanged.
        """
        self._listeners[EventKind(kind)].append(listener)
        return listener

    def off(self, kind: Union[EventKind, str], listener: Listener) -> None:
        """Remove a previously registered listener (no-op if absent)."""
        listeners = self._listeners.get(EventKind(kind), [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: Event) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners.get(event.kind, ())):
            listener(event)
