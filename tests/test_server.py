"""Tests for server-level payloads."""

from fluxfeed_mcp import SCHEMA_VERSION
from fluxfeed_mcp.server import health_report


class TestHealthReport:
    """Tests for health_report."""

    def test_keyed(self, config, fixed_now) -> None:
        report = health_report(config, now=fixed_now)

        assert report["ok"] is True
        assert report["time"] == "2024-05-01T12:00:00.000Z"
        assert report["schema_version"] == SCHEMA_VERSION
        assert report["providers"] == {"cryptonews": True, "classifier": True}

    def test_keyless(self, keyless_config) -> None:
        report = health_report(keyless_config)

        assert report["providers"] == {"cryptonews": False, "classifier": False}
        assert report["time"].endswith("Z")
