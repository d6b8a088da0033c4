"""URL resolution, normalization and same-origin checks."""

from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse

ALLOWED_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}


class InvalidURLError(ValueError):
    """Raised when a seed URL is not an absolute http(s) URL."""


def resolve_url(base_url: str, href: str) -> Optional[str]:
    """Resolve a potentially relative href against a base URL.

    Examples:
        base = "https://example.com/a/b"
        href = "/relative"
        result = "https://example.com/relative"

        base = "https://example.com/a/b"
        href = "mailto:someone@example.com"
        result = None

    Args:
        base_url: The page URL where the href was found.
        href: The href value from an anchor tag.

    Returns:
        Normalized absolute URL, or None if the href is fragment-only,
        cannot be resolved, or does not point at an http(s) resource.
    """
    if not href:
        return None

    href = href.strip()
    if not href or href.startswith("#"):
        return None

    try:
        resolved = urljoin(base_url, href)
        return _normalize_url(resolved)
    except ValueError:
        # Bad IPv6 literals, malformed host labels and out-of-range ports
        # surface here
        return None


def _normalize_url(url: str) -> Optional[str]:
    """Normalize a URL for consistent comparison.

    Lower-cases scheme and host, drops default ports and the fragment,
    and turns an empty path into "/".

    Raises:
        ValueError: If the netloc cannot be parsed or the host has an
            empty or over-long label.
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()

    if scheme not in ALLOWED_SCHEMES or not parsed.hostname:
        return None

    return urlunparse((
        scheme,
        _netloc(parsed, scheme),
        parsed.path or "/",
        parsed.params,
        parsed.query,
        "",  # Remove fragment
    ))


def _netloc(parsed, scheme: str) -> str:
    hostname = parsed.hostname.lower()
    if ":" in hostname:
        hostname = f"[{hostname}]"
    else:
        # Empty labels ("a..b") and labels over 63 characters raise UnicodeError
        hostname.encode("idna")

    port = parsed.port
    if port is not None and port != DEFAULT_PORTS[scheme]:
        hostname = f"{hostname}:{port}"

    userinfo = ""
    if parsed.username is not None:
        userinfo = parsed.username
        if parsed.password is not None:
            userinfo += f":{parsed.password}"
        userinfo += "@"

    return userinfo + hostname


def validate_seed_url(url: str) -> str:
    """Check that a seed URL is crawlable and return its normalized form.

    Args:
        url: URL supplied by the caller.

    Returns:
        Normalized absolute URL.

    Raises:
        InvalidURLError: If the URL is relative, has no host, or uses a
            scheme other than http/https.
    """
    candidate = (url or "").strip()
    try:
        parsed = urlparse(candidate)
        normalized = _normalize_url(candidate) if parsed.scheme else None
    except ValueError as e:
        raise InvalidURLError(f"Invalid base URL: {url!r} ({e})") from e

    if not normalized:
        raise InvalidURLError(
            f"Invalid base URL: {url!r} (expected an absolute http(s) URL)"
        )
    return normalized


def get_origin(url: str) -> str:
    """Extract the origin (scheme + host + port) from a URL.

    Args:
        url: Full URL.

    Returns:
        Origin, e.g. 'https://example.com' or 'http://localhost:8080'
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    hostname = (parsed.hostname or "").lower()
    if ":" in hostname:
        hostname = f"[{hostname}]"
    port = parsed.port
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{hostname}:{port}"
    return f"{scheme}://{hostname}"


def is_same_origin(url: str, other: str) -> bool:
    """Check if two URLs share scheme, host and port."""
    try:
        return get_origin(url) == get_origin(other)
    except ValueError:
        return False
