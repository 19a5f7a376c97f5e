"""Shared fixtures for Journey Replay tests."""

import copy

import pytest


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "smoke: mark test as smoke test (fast, critical path - included in CI)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Pin settings-related environment variables for a test."""
    monkeypatch.setenv("JOURNEY_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("JOURNEY_LOG_JSON", "false")
    monkeypatch.setenv("JOURNEY_MAX_TRACE_EVENTS", "1000")
    monkeypatch.delenv("JOURNEY_APPLY_FILTERS_BY_DEFAULT", raising=False)


# =============================================================================
# Trace Fixtures
# =============================================================================


CHECKOUT_TRACE = {
    "videoStartedAt": 1000,
    "videoAvailable": True,
    "events": [
        {"kind": "click", "id": 1, "ts": 1000, "host": "app.com", "label": "Buy", "selector": "#buy"},
        {
            "kind": "request",
            "id": 2,
            "ts": 1050,
            "url": "https://api.app.com/a",
            "method": "GET",
            "status": 200,
            "statusText": "OK",
            "duration": 100,
        },
        {
            "kind": "request",
            "id": 3,
            "ts": 1200,
            "url": "https://api.app.com/b",
            "method": "POST",
            "status": 201,
            "statusText": "Created",
            "duration": 300,
        },
        {"kind": "click", "id": 4, "ts": 2000, "host": "app.com", "label": "Checkout"},
    ],
}


@pytest.fixture
def checkout_trace_data():
    """Click, two API requests, second click (all on app.com)."""
    return copy.deepcopy(CHECKOUT_TRACE)


@pytest.fixture
def checkout_trace(checkout_trace_data):
    """Parsed checkout trace with internal ids jr-0 .. jr-3."""
    from journey_replay.trace.loader import parse_trace

    return parse_trace(checkout_trace_data)


@pytest.fixture
def noisy_trace_data():
    """Trace mixing API traffic with assets, trackers and preflights."""
    return {
        "videoStartedAt": 5000,
        "events": [
            {"kind": "request", "ts": 4900, "url": "https://app.com/boot.js", "method": "GET", "status": 200},
            {"kind": "navigation", "ts": 5000, "host": "www.shop.com", "url": "https://www.shop.com/", "transitionType": "typed"},
            {"kind": "request", "ts": 5100, "url": "https://x.com/a.png", "method": "GET", "status": 200},
            {"kind": "request", "ts": 5110, "url": "https://x.com/a.PNG", "method": "GET", "status": 200},
            {"kind": "request", "ts": 5120, "url": "https://www.google-analytics.com/collect?v=1", "method": "POST", "status": 204},
            {"kind": "request", "ts": 5130, "url": "https://api.shop.com/cart", "method": "OPTIONS", "status": 204},
            {"kind": "request", "ts": 5140, "url": "https://api.shop.com/cart", "method": "GET", "status": 200, "statusText": "OK"},
            {"kind": "click", "ts": 6000, "host": "shop.com", "text": "Pay now"},
            {"kind": "request", "ts": 6100, "url": "https://pay.shop.com/charge", "method": "POST", "status": 500, "statusText": "Server Error"},
        ],
    }


@pytest.fixture
def session(checkout_trace_data):
    """ReplaySession with the checkout trace loaded."""
    from journey_replay.session import ReplaySession

    replay = ReplaySession(session_id="test-session")
    replay.load_trace_data(checkout_trace_data, "checkout.json")
    return replay
