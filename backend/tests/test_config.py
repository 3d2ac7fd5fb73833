import logging

import pytest
from httpx import ASGITransport, AsyncClient

from app import config
from app.config import _canon_prefix, parse_allowed_origins
from app.main import app


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, "/api"),
        ("", "/api"),
        ("api", "/api"),
        ("/api/", "/api"),
        (" /ladder ", "/ladder"),
        ("/", "/"),
    ],
)
def test_canon_prefix(raw, expected):
    assert _canon_prefix(raw) == expected


def test_parse_allowed_origins():
    assert parse_allowed_origins("http://a.test, http://b.test ,") == [
        "http://a.test",
        "http://b.test",
    ]


@pytest.mark.parametrize("raw", [None, "", "   ", " , ", "*", "http://a.test,*"])
def test_rejects_missing_or_wildcard_origins(raw):
    with pytest.raises(ValueError):
        parse_allowed_origins(raw)


def test_numeric_settings_fall_back_on_bad_values(monkeypatch, caplog):
    monkeypatch.setenv("LOCK_TIMEOUT_SECONDS", "soon")
    monkeypatch.setenv("TRANSACTION_RETRIES", "-2")
    with caplog.at_level(logging.WARNING):
        assert config._parse_positive_float("LOCK_TIMEOUT_SECONDS", 5.0) == 5.0
        assert config._parse_non_negative_int("TRANSACTION_RETRIES", 3) == 3
    assert "LOCK_TIMEOUT_SECONDS is not a valid float" in caplog.text
    assert "TRANSACTION_RETRIES cannot be negative" in caplog.text

    monkeypatch.setenv("TRANSACTION_RETRIES", "0")
    assert config._parse_non_negative_int("TRANSACTION_RETRIES", 3) == 0


def test_database_url_uses_asyncpg_driver(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/ladder")
    assert config.database_url() == "postgresql+asyncpg://u:p@db/ladder"


def test_rating_constants():
    assert config.DEFAULT_RATING == 1500
    assert config.K_FACTOR == 32


@pytest.mark.anyio
async def test_cors_allows_only_configured_origins():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        allowed = await client.get("/healthz", headers={"Origin": "http://localhost:5173"})
        denied = await client.get("/healthz", headers={"Origin": "http://evil.test"})

    assert allowed.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert "access-control-allow-origin" not in denied.headers
