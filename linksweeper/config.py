"""Configuration dataclasses and config-file loading for LinkSweeper."""

import dataclasses
import json
import os
import re
from dataclasses import dataclass, field
from typing import Any, Optional

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; LinkSweeper/1.0)"


class ConfigError(ValueError):
    """Raised when a configuration file or value is invalid."""


@dataclass(frozen=True)
class DomainConfig:
    """Overrides applied to requests for a single hostname."""

    headers: dict[str, str] = field(default_factory=dict)
    rate_limit: Optional[int] = None  # Reserved, not consulted by the checker


@dataclass(frozen=True)
class CheckerConfig:
    """Configuration for a link-check run."""

    ignore_links: tuple[str, ...] = ()  # Regex sources, searched anywhere in the URL
    headers: dict[str, str] = field(default_factory=dict)
    concurrency: int = 5
    timeout: int = 3000  # Milliseconds per request attempt
    retries: int = 3
    retry_delay: int = 1000  # Milliseconds between attempts
    rate_limit: Optional[int] = None  # Reserved, not consulted by the checker
    domain_specific_config: dict[str, DomainConfig] = field(default_factory=dict)
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self):
        # Lists are accepted for convenience but stored as a tuple
        object.__setattr__(self, "ignore_links", tuple(self.ignore_links))

        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be at least 1 (got {self.concurrency})")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be a positive number of milliseconds (got {self.timeout})")
        if self.retry_delay < 0:
            raise ConfigError(f"retryDelay must not be negative (got {self.retry_delay})")

        for pattern in self.ignore_links:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ConfigError(f"Invalid ignoreLinks pattern {pattern!r}: {e}") from e

    @property
    def attempts(self) -> int:
        """Number of fetch attempts per URL (retries, at least 1)."""
        return max(1, self.retries)

    def headers_for(self, hostname: str) -> dict[str, str]:
        """Global headers overridden by any headers configured for hostname."""
        merged = {"User-Agent": self.user_agent}
        merged.update(self.headers)
        domain = self.domain_specific_config.get(hostname)
        if domain is not None:
            merged.update(domain.headers)
        return merged

    def merged(self, **overrides) -> "CheckerConfig":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict) -> "CheckerConfig":
        """Build a config from the JSON structure used by config files.

        Keys use the camelCase names of the file format (ignoreLinks,
        retryDelay, domainSpecificConfig, ...). Unknown keys are ignored.

        Raises:
            ConfigError: If a value has the wrong type or is out of range.
        """
        if not isinstance(data, dict):
            raise ConfigError(f"expected a JSON object, got {type(data).__name__}")

        kwargs: dict[str, Any] = {}

        if "ignoreLinks" in data:
            kwargs["ignore_links"] = tuple(_string_list(data["ignoreLinks"], "ignoreLinks"))
        if "headers" in data:
            kwargs["headers"] = _string_map(data["headers"], "headers")

        for key, attr in (
            ("concurrency", "concurrency"),
            ("timeout", "timeout"),
            ("retries", "retries"),
            ("retryDelay", "retry_delay"),
            ("rateLimit", "rate_limit"),
        ):
            if key in data:
                kwargs[attr] = _integer(data[key], key)

        if "domainSpecificConfig" in data:
            kwargs["domain_specific_config"] = _domain_configs(data["domainSpecificConfig"])

        return cls(**kwargs)


def _integer(value: Any, name: str) -> int:
    # bool is an int subclass; JSON true/false are not valid numbers here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be an integer (got {value!r})")
    if isinstance(value, float):
        if not value.is_integer():
            raise ConfigError(f"{name} must be an integer (got {value!r})")
        value = int(value)
    return value


def _string_list(value: Any, name: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{name} must be a list of strings")
    return list(value)


def _string_map(value: Any, name: str) -> dict[str, str]:
    if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
        raise ConfigError(f"{name} must be an object mapping strings to strings")
    return dict(value)


def _domain_configs(value: Any) -> dict[str, DomainConfig]:
    if not isinstance(value, dict):
        raise ConfigError("domainSpecificConfig must be an object keyed by hostname")

    domains = {}
    for hostname, entry in value.items():
        if not isinstance(entry, dict):
            raise ConfigError(f"domainSpecificConfig.{hostname} must be an object")
        domains[hostname.lower()] = DomainConfig(
            headers=_string_map(entry.get("headers", {}), f"domainSpecificConfig.{hostname}.headers"),
            rate_limit=(
                _integer(entry["rateLimit"], f"domainSpecificConfig.{hostname}.rateLimit")
                if "rateLimit" in entry else None
            ),
        )
    return domains


def load_config(config_path: Optional[str] = None) -> CheckerConfig:
    """Load a CheckerConfig from a JSON file.

    Args:
        config_path: Path to the config file. When omitted, defaults are used.

    Returns:
        Validated CheckerConfig instance.

    Raises:
        ConfigError: If the file is missing, unreadable, not valid JSON,
            or fails validation.
    """
    if not config_path:
        return CheckerConfig()

    config_file_path = os.path.abspath(config_path)
    if not os.path.exists(config_file_path):
        raise ConfigError(f"Config file not found at {config_file_path}")

    try:
        with open(config_file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return CheckerConfig.from_dict(data)
    except (OSError, json.JSONDecodeError, ConfigError) as e:
        raise ConfigError(f"Error loading config file: {e}") from e
