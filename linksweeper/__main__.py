"""CLI entry point for LinkSweeper.

Usage:
    python -m linksweeper --base-url URL [--config-file PATH] [options]
"""

import argparse
import asyncio
import sys

from .checker import CheckResult, LinkChecker
from .config import CheckerConfig, ConfigError, load_config
from .events import (
    EventKind,
    LinkError,
    LinkRedirect,
    LinkStart,
    LinkSuccess,
    Retry,
    Start,
)
from .url_resolver import InvalidURLError, validate_seed_url


def _flush() -> None:
    """Flush stdout so output appears immediately in piped/buffered contexts."""
    sys.stdout.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linksweeper",
        description="LinkSweeper - Recursive website link checker. Reports broken links and the pages they appear on.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check every link reachable from the home page
  python -m linksweeper --base-url "https://example.com"

  # Use a JSON config file (ignoreLinks, headers, concurrency, timeout, ...)
  python -m linksweeper --base-url "https://example.com" -C linksweeper.json

  # Skip external social links and send an auth header
  python -m linksweeper --base-url "https://example.com" --ignore "twitter\\.com" --header "Authorization: Bearer TOKEN"

Exit status is 0 when no broken links are found and 1 otherwise.
        """,
    )

    parser.add_argument(
        "--base-url",
        required=True,
        help="The URL to start checking links from (e.g., https://example.com)",
    )

    parser.add_argument(
        "--config-file", "-C",
        default=None,
        help="Path to a JSON config file",
    )

    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum number of requests in flight (default: 5, or the config file value)",
    )

    parser.add_argument(
        "--timeout",
        type=int,
        default=None,
        help="Request timeout in milliseconds (default: 3000, or the config file value)",
    )

    parser.add_argument(
        "--retries",
        type=int,
        default=None,
        help="Attempts per link before it is reported broken (default: 3, or the config file value)",
    )

    parser.add_argument(
        "--retry-delay",
        type=int,
        default=None,
        help="Milliseconds to wait between attempts (default: 1000, or the config file value)",
    )

    parser.add_argument(
        "--ignore",
        action="append",
        default=[],
        metavar="REGEX",
        help="Skip URLs matching this regular expression. May be repeated; "
             "added to the config file's ignoreLinks.",
    )

    parser.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Extra request header. May be repeated; overrides config file headers of the same name.",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Also show each link as it is checked, redirects and retries",
    )

    return parser


def parse_header(value: str) -> tuple[str, str]:
    """Split a 'Name: value' header argument."""
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise ConfigError(f"Invalid header {value!r} (expected 'Name: value')")
    return name.strip(), header_value.strip()


def build_config(args: argparse.Namespace) -> CheckerConfig:
    """Load the config file (if any) and layer command-line overrides on top."""
    config = load_config(args.config_file)

    headers = None
    if args.header:
        headers = dict(config.headers)
        headers.update(parse_header(h) for h in args.header)

    return config.merged(
        concurrency=args.concurrency,
        timeout=args.timeout,
        retries=args.retries,
        retry_delay=args.retry_delay,
        ignore_links=(config.ignore_links + tuple(args.ignore)) if args.ignore else None,
        headers=headers,
    )


class ConsoleReporter:
    """Prints checker events to stdout as they happen."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def attach(self, checker: LinkChecker) -> None:
        checker.on(EventKind.START, self.on_start)
        checker.on(EventKind.LINK_SUCCESS, self.on_success)
        checker.on(EventKind.LINK_ERROR, self.on_error)
        if self.verbose:
            checker.on(EventKind.LINK_START, self.on_link_start)
            checker.on(EventKind.LINK_REDIRECT, self.on_redirect)
            checker.on(EventKind.RETRY, self.on_retry)

    def on_start(self, event: Start) -> None:
        print(f"Checking links from {event.url}...")
        _flush()

    def on_link_start(self, event: LinkStart) -> None:
        print(f"  [CHECK] {event.url}")
        _flush()

    def on_success(self, event: LinkSuccess) -> None:
        print(f"  [OK] {event.url} (Status: {event.status_code})")
        _flush()

    def on_redirect(self, event: LinkRedirect) -> None:
        print(f"  [REDIRECT] {event.from_url} -> {event.to_url}")
        _flush()

    def on_error(self, event: LinkError) -> None:
        reason = f"Status: {event.status_code}" if event.status_code else f"Error: {event.error}"
        print(f"  [BROKEN] {event.url} ({reason})")
        _flush()

    def on_retry(self, event: Retry) -> None:
        print(f"  [RETRY] Attempt {event.attempt} failed for {event.url}: {event.error}")
        _flush()


def print_summary(result: CheckResult) -> None:
    """Print the list of broken links after a run."""
    print()
    print("=" * 70)
    print(f"  Completed checking {len(result.links_visited)} links")
    if result.broken_links:
        print(f"  {len(result.broken_links)} broken links found:")
        print("=" * 70)
        for link in result.broken_links:
            print(f"- {link.url} ({link.reason})")
            if link.parent_url:
                print(f"  Found on page: {link.parent_url}")
    else:
        print("  No broken links found.")
        print("=" * 70)
    _flush()


def main(argv: list[str] | None = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        url = validate_seed_url(args.base_url)
        config = build_config(args)
    except (InvalidURLError, ConfigError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    if args.config_file:
        print(f"Using config file: {args.config_file}")

    checker = LinkChecker(config)
    ConsoleReporter(verbose=args.verbose).attach(checker)

    try:
        result = asyncio.run(checker.run(url))
    except KeyboardInterrupt:
        print("\n\n[INTERRUPTED] Link check stopped by user.")
        print(f"  Links checked so far: {len(checker.visited)}")
        print(f"  Broken so far: {len(checker.broken_links)}")
        return 1

    print_summary(result)
    return 1 if result.broken_links else 0


if __name__ == "__main__":
    raise SystemExit(main())
