"""Tests for linksweeper/config.py and linksweeper/ignore.py."""

import json

import pytest

from linksweeper.config import CheckerConfig, ConfigError, DomainConfig, load_config
from linksweeper.ignore import IgnoreFilter


def write_config(tmp_path, payload):
    path = tmp_path / "linksweeper.json"
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# Defaults and validation
# ---------------------------------------------------------------------------

class TestCheckerConfig:

    def test_defaults(self):
        config = CheckerConfig()
        assert config.ignore_links == ()
        assert config.headers == {}
        assert config.concurrency == 5
        assert config.timeout == 3000
        assert config.retries == 3
        assert config.retry_delay == 1000
        assert config.domain_specific_config == {}

    def test_instances_do_not_share_mutable_defaults(self):
        assert CheckerConfig().headers is not CheckerConfig().headers

    @pytest.mark.parametrize("kwargs", [
        {"concurrency": 0},
        {"timeout": 0},
        {"retry_delay": -1},
        {"ignore_links": ["(unclosed"]},
    ])
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ConfigError):
            CheckerConfig(**kwargs)

    def test_attempts_has_floor_of_one(self):
        assert CheckerConfig(retries=0).attempts == 1
        assert CheckerConfig(retries=4).attempts == 4

    def test_merged_ignores_none(self):
        config = CheckerConfig(concurrency=2).merged(concurrency=None, timeout=500)
        assert config.concurrency == 2
        assert config.timeout == 500

    def test_headers_for_merges_domain_headers(self):
        config = CheckerConfig(
            headers={"Accept": "text/html", "X-Key": "global"},
            domain_specific_config={"api.example.com": DomainConfig(headers={"X-Key": "api"})},
        )
        assert config.headers_for("api.example.com")["X-Key"] == "api"
        assert config.headers_for("api.example.com")["Accept"] == "text/html"
        assert config.headers_for("www.example.com")["X-Key"] == "global"


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------

class TestLoadConfig:

    def test_no_path_gives_defaults(self):
        assert load_config() == CheckerConfig()
        assert load_config(None) == CheckerConfig()

    def test_loads_all_fields(self, tmp_path):
        path = write_config(tmp_path, {
            "ignoreLinks": ["^https://twitter\\.com", "/logout"],
            "headers": {"Authorization": "Bearer abc"},
            "concurrency": 10,
            "timeout": 5000,
            "retries": 2,
            "retryDelay": 250,
            "rateLimit": 100,
            "domainSpecificConfig": {
                "Docs.Example.com": {"headers": {"X-Docs": "1"}, "rateLimit": 5},
            },
        })

        config = load_config(path)

        assert config.ignore_links == ("^https://twitter\\.com", "/logout")
        assert config.headers == {"Authorization": "Bearer abc"}
        assert config.concurrency == 10
        assert config.timeout == 5000
        assert config.retries == 2
        assert config.retry_delay == 250
        assert config.rate_limit == 100
        assert config.domain_specific_config == {
            "docs.example.com": DomainConfig(headers={"X-Docs": "1"}, rate_limit=5),
        }

    def test_partial_file_keeps_defaults(self, tmp_path):
        config = load_config(write_config(tmp_path, {"concurrency": 1, "unknownKey": True}))
        assert config.concurrency == 1
        assert config.timeout == 3000

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Config file not found at"):
            load_config(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        with pytest.raises(ConfigError, match="Error loading config file"):
            load_config(write_config(tmp_path, "{not json"))

    @pytest.mark.parametrize("payload", [
        [],
        {"concurrency": "5"},
        {"concurrency": True},
        {"timeout": 1.5},
        {"ignoreLinks": "single-string"},
        {"headers": {"X-Num": 1}},
        {"domainSpecificConfig": {"example.com": "bad"}},
        {"domainSpecificConfig": {"example.com": {"rateLimit": "fast"}}},
        {"ignoreLinks": ["[bad"]},
        {"concurrency": 0},
    ])
    def test_schema_violations(self, tmp_path, payload):
        with pytest.raises(ConfigError, match="Error loading config file"):
            load_config(write_config(tmp_path, payload))


# ---------------------------------------------------------------------------
# Ignore filter
# ---------------------------------------------------------------------------

class TestIgnoreFilter:

    def test_search_not_full_match(self):
        ignore = IgnoreFilter(["logout"])
        assert ignore.matches("https://example.com/account/logout?next=/")

    def test_any_pattern_matches(self):
        ignore = IgnoreFilter([r"^https://twitter\.com", r"\.pdf$"])
        assert ignore.matches("https://twitter.com/share")
        assert ignore.matches("https://example.com/report.pdf")
        assert not ignore.matches("https://example.com/report.html")

    def test_empty_filter_matches_nothing(self):
        assert not IgnoreFilter().matches("https://example.com/")

    def test_invalid_pattern(self):
        with pytest.raises(ConfigError):
            IgnoreFilter(["(oops"])
