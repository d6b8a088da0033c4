"""
Recursive website link checker. Crawls same-origin pages from a seed URL
and reports broken links together with the pages that reference them.
"""
from .checker import AlreadyRunningError, CheckResult, LinkChecker, check_links
from .config import CheckerConfig, ConfigError, DomainConfig, load_config
from .events import BrokenLink, EventKind
from .url_resolver import InvalidURLError

__version__ = "1.0.0"
__all__ = [
    "AlreadyRunningError",
    "BrokenLink",
    "CheckResult",
    "CheckerConfig",
    "ConfigError",
    "DomainConfig",
    "EventKind",
    "InvalidURLError",
    "LinkChecker",
    "check_links",
    "load_config",
]
