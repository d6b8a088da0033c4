"""Regex-based exclusion of URLs from a link-check run."""

import re
from typing import Iterable

from .config import ConfigError


class IgnoreFilter:
    """Matches URLs against an ordered list of regular expressions.

    A URL is ignored if any pattern is found anywhere in it
    (re.search semantics, not a full match).
    """

    def __init__(self, patterns: Iterable[str] = ()):
        self.patterns: list[re.Pattern] = []
        for source in patterns:
            try:
                self.patterns.append(re.compile(source))
            except re.error as e:
                raise ConfigError(f"Invalid ignoreLinks pattern {source!r}: {e}") from e

    def matches(self, url: str) -> bool:
        return any(pattern.search(url) for pattern in self.patterns)
