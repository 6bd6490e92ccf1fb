"""Pytest configuration and shared fixtures for the harness test suite.

This module provides hermetic test infrastructure:
- No external network requests (httpx.MockTransport in front of a fake server)
- Deterministic identities (fixed clock, seeded randomness)
- Isolated configuration (get_config cache cleared around each test)

The FakeCfpServer keeps users, sessions and resources in memory and
implements the routes the suite exercises, with fault injection so tests
can make any single call fail in a chosen way.
"""

import json
import random
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable
from urllib.parse import parse_qsl

import httpx
import pytest

from config.settings import HarnessConfig

FIXED_NOW_MS = 1_700_000_000_000


@pytest.fixture
def mock_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> HarnessConfig:
    """Provide isolated HarnessConfig with safe test defaults.

    Overrides the lru_cache singleton to prevent state leakage between tests.

    Args:
        tmp_path: Pytest temporary directory fixture.
        monkeypatch: Pytest monkeypatch fixture for patching.

    Returns:
        HarnessConfig instance pointing at the fake server's base URL.
    """
    from config.settings import get_config

    get_config.cache_clear()

    log_dir = tmp_path / "logs"
    log_dir.mkdir()

    monkeypatch.delenv("BASE_URL", raising=False)
    test_env = {
        "APP_NAME": "CFP-Harness-Test",
        "ENVIRONMENT": "test",
        "DEBUG": "false",
        "LOG_LEVEL": "DEBUG",
        "LOG_DIR": str(log_dir),
        "LOG_TO_FILE": "false",
        "LOG_ROTATION": "1 day",
        "LOG_RETENTION": "1 day",
        "CFP_BASE_URL": "https://cfp.test",
        "REQUEST_TIMEOUT_MS": "5000",
        "FALLBACK_ATTEMPTS": "1",
        "IDENTITY_PASSWORD": "Test@12345",
        "IDENTITY_MOBILE": "999999999",
        "IDENTITY_EMAIL_DOMAIN": "example.com",
        "TRANSACTION_CURRENCY": "BRL",
    }

    for key, value in test_env.items():
        monkeypatch.setenv(key, value)

    config = get_config()

    yield config

    get_config.cache_clear()


@dataclass
class Fault:
    """A canned failure for requests matching method and path prefix."""

    method: str
    path_prefix: str
    respond: Callable[[httpx.Request], httpx.Response]
    times: int | None = None

    def matches(self, request: httpx.Request) -> bool:
        if self.times == 0:
            return False
        return request.method == self.method and request.url.path.startswith(self.path_prefix)


class FakeCfpServer:
    """In-memory stand-in for the CFP server.

    Attributes:
        users: Registered accounts keyed by e-mail.
        sessions: Session token to e-mail.
        categories / transactions / goals: Resources keyed by id.
        requests: Every request received, in order.
        signouts: Number of sign-out requests received.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.sessions: dict[str, str] = {}
        self.categories: dict[str, dict[str, Any]] = {}
        self.transactions: dict[str, dict[str, Any]] = {}
        self.goals: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.created: dict[str, list[str]] = {}
        self.signouts = 0
        self.cookie_attributes = "; Path=/; HttpOnly"
        self._faults: list[Fault] = []
        self.transport = httpx.MockTransport(self.handle)

    # -- fault injection -------------------------------------------------

    def fail(
        self,
        method: str,
        path_prefix: str,
        status: int = 500,
        body: Any = None,
        headers: dict[str, str] | None = None,
        times: int | None = None,
    ) -> None:
        """Answer matching requests with a canned response."""

        def respond(request: httpx.Request) -> httpx.Response:
            payload = {"success": False, "message": "injected"} if body is None else body
            return httpx.Response(status, json=payload, headers=headers)

        self._faults.append(Fault(method, path_prefix, respond, times))

    def raise_on(self, method: str, path_prefix: str, exc_type: type[httpx.HTTPError], times: int | None = None) -> None:
        """Raise a transport-level httpx error for matching requests."""

        def respond(request: httpx.Request) -> httpx.Response:
            raise exc_type("injected transport failure", request=request)

        self._faults.append(Fault(method, path_prefix, respond, times))

    def register(self, email: str, password: str, username: str = "stale") -> None:
        """Pre-create an account, as a previous run would have."""
        self.users[email] = {"username": username, "email": email, "password": password, "mobile": "0"}

    # -- introspection ---------------------------------------------------

    def calls(self, method: str | None = None, path_prefix: str = "") -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method) and r.url.path.startswith(path_prefix)
        ]

    def paths(self) -> list[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]

    # -- routing ---------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        for fault in self._faults:
            if fault.matches(request):
                if fault.times is not None:
                    fault.times -= 1
                return fault.respond(request)

        path = request.url.path
        method = request.method

        if path == "/user/signup" and method == "POST":
            return self._signup(request)
        if path == "/user/signin" and method == "POST":
            return self._signin(request)

        email = self._authenticated(request)
        if email is None:
            return httpx.Response(401, json={"success": False, "message": "Unauthorized"})

        if path == "/user/signout" and method == "GET":
            self.signouts += 1
            self.sessions = {t: e for t, e in self.sessions.items() if e != email}
            return httpx.Response(201, json={"success": True})
        if path == "/user/protectedRoute" and method == "GET":
            return httpx.Response(200, json={"success": True, "user": {"email": email}})

        if path == "/category/addCategory" and method == "POST":
            return self._create(self.categories, "category", json.loads(request.content))
        if path == "/category/getCategory" and method == "GET":
            return httpx.Response(200, json={"success": True, "categories": list(self.categories.values())})
        if path.startswith("/category/deleteCategory/") and method == "DELETE":
            return self._delete(self.categories, path.rsplit("/", 1)[1])

        if path == "/transaction/addTransaction" and method == "POST":
            form = self._form(request)
            if form.get("category") not in self.categories:
                return httpx.Response(400, json={"success": False, "message": "Invalid category"})
            return self._create(self.transactions, "transaction", form)
        if path == "/transaction/getTransaction" and method == "GET":
            return httpx.Response(200, json={"success": True, "transactions": list(self.transactions.values())})
        if path.startswith("/transaction/editTransaction/") and method == "PUT":
            return self._update(self.transactions, path.rsplit("/", 1)[1], self._form(request))
        if path.startswith("/transaction/deleteTransaction/") and method == "DELETE":
            return self._delete(self.transactions, path.rsplit("/", 1)[1])

        if path == "/meta/goals-limits" and method == "POST":
            return self._create(self.goals, "goalLimit", json.loads(request.content))
        if path == "/meta/goals-limits" and method == "GET":
            return httpx.Response(200, json={"success": True, "goalLimits": list(self.goals.values())})
        if path.startswith("/meta/goals-limits/") and method == "PUT":
            return self._update(self.goals, path.rsplit("/", 1)[1], json.loads(request.content))

        return httpx.Response(404, json={"success": False, "message": "Not found"})

    def _signup(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        if payload["email"] in self.users:
            return httpx.Response(400, json={"success": False, "message": "User already exists"})
        self.users[payload["email"]] = payload
        return httpx.Response(200, json={"success": True})

    def _signin(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        user = self.users.get(payload["email"])
        if user is None or user["password"] != payload["password"]:
            return httpx.Response(401, json={"success": False, "message": "Invalid credentials"})
        token = uuid.uuid4().hex
        self.sessions[token] = payload["email"]
        return httpx.Response(
            200,
            json={"success": True},
            headers={"set-cookie": f"token={token}{self.cookie_attributes}"},
        )

    def _authenticated(self, request: httpx.Request) -> str | None:
        cookie = request.headers.get("cookie", "")
        for part in cookie.split(";"):
            name, _, value = part.strip().partition("=")
            if name == "token" and value in self.sessions:
                return self.sessions[value]
        return None

    @staticmethod
    def _form(request: httpx.Request) -> dict[str, str]:
        return dict(parse_qsl(request.content.decode()))

    def _create(self, store: dict[str, dict[str, Any]], key: str, fields: dict[str, Any]) -> httpx.Response:
        resource_id = uuid.uuid4().hex[:24]
        store[resource_id] = {"_id": resource_id, **fields}
        self.created.setdefault(key, []).append(resource_id)
        return httpx.Response(200, json={"success": True, key: store[resource_id]})

    @staticmethod
    def _update(store: dict[str, dict[str, Any]], resource_id: str, fields: dict[str, Any]) -> httpx.Response:
        if resource_id not in store:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        store[resource_id].update(fields)
        return httpx.Response(200, json={"success": True})

    @staticmethod
    def _delete(store: dict[str, dict[str, Any]], resource_id: str) -> httpx.Response:
        if store.pop(resource_id, None) is None:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        return httpx.Response(200, json={"success": True})


@pytest.fixture
def fake_server() -> FakeCfpServer:
    """Fresh in-memory CFP server per test."""
    return FakeCfpServer()


@pytest.fixture
def fixed_clock() -> Callable[[], int]:
    """Millisecond clock frozen at FIXED_NOW_MS."""
    return lambda: FIXED_NOW_MS


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1234)


# Pytest configuration
def pytest_configure(config: Any) -> None:
    """Register custom markers.

    Args:
        config: Pytest config object.
    """
    config.addinivalue_line(
        "markers",
        "integration: marks tests that drive the whole suite against the fake server",
    )
    config.addinivalue_line(
        "markers",
        "live: marks tests that hit the real deployment (set CFP_E2E=1 to run)",
    )
