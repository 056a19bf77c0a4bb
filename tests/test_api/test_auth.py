"""Tests for API key authentication."""

import pytest

from event_search.api.auth import configured_keys
from event_search.config.settings import get_settings


def _secure(monkeypatch, keys: str) -> None:
    monkeypatch.setenv("API_KEYS", keys)
    get_settings.cache_clear()


class TestConfiguredKeys:
    """Tests for parsing the API_KEYS setting."""

    @pytest.mark.parametrize("raw", [None, "", " , ,"])
    def test_no_keys(self, raw):
        """Unset, empty and separator-only settings hold no keys."""
        assert configured_keys(raw) == frozenset()

    def test_blanks_trimmed(self):
        """Whitespace around commas is ignored."""
        assert configured_keys(" key-one ,key-two,, ") == {"key-one", "key-two"}


class TestVerifyApiKey:
    """Tests for the X-API-KEY dependency on protected routes."""

    def test_open_without_keys(self, client):
        """With API_KEYS unset every request is accepted."""
        assert client.get("/events").status_code == 200

    def test_rejection_challenges_client(self, client, monkeypatch):
        """A 401 names the scheme the client should use."""
        _secure(monkeypatch, "key-one")

        response = client.get("/events")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "APIKey"
        assert "X-API-KEY" in response.json()["detail"]

    def test_prefix_of_key_rejected(self, client, monkeypatch):
        """Only whole keys match."""
        _secure(monkeypatch, "key-one")

        response = client.get("/events", headers={"X-API-KEY": "key"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid API key"

    def test_separator_only_setting_rejects(self, client, monkeypatch):
        """A set but blank key list locks the API rather than opening it."""
        _secure(monkeypatch, " , ")

        response = client.get("/events", headers={"X-API-KEY": "anything"})

        assert response.status_code == 401

    def test_health_needs_no_key(self, client, monkeypatch):
        """The health check stays reachable when keys are configured."""
        _secure(monkeypatch, "key-one")

        assert client.get("/health").status_code == 200
