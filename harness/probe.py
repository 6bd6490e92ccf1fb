"""Single-request HTTP probe with declared status and JSON shape.

HttpProbe wraps one ``httpx.AsyncClient`` for the whole run. Every call
sends exactly one request, waits for it (bounded by the configured timeout)
and then checks the declared expectations:

    - the status code must equal ``expect_status`` exactly;
    - the body must be "JSON-like" the declared shape: every declared key
      present with a matching value, extra keys allowed.

Any failure surfaces as a ProbeError subclass so the runner can fail the
step that issued it and keep going.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Self

import httpx
from pydantic import BaseModel, Field

from config.settings import HarnessConfig, get_config
from harness.exceptions import (
    MalformedRequestError,
    ProbeTransportError,
    ShapeMismatchError,
    StatusMismatchError,
)
from harness.logger import get_logger

log = get_logger(__name__)


def json_like(actual: Any, expected: Any, path: str = "$") -> list[str]:
    """Check that ``actual`` contains at least the shape of ``expected``.

    Dicts match when every expected key is present and matches recursively.
    Lists match when every expected element matches a distinct element of
    the actual list, in any order. Scalars compare with ``==``, except that
    booleans never match numbers.

    Args:
        actual: Parsed response body (or a part of it).
        expected: Declared shape.
        path: JSONPath-ish location used in mismatch messages.

    Returns:
        Mismatch descriptions; an empty list means the body matches.
    """
    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            return [f"{path}: expected an object, got {type(actual).__name__}"]
        mismatches: list[str] = []
        for key, value in expected.items():
            if key not in actual:
                mismatches.append(f"{path}.{key}: missing")
                continue
            mismatches.extend(json_like(actual[key], value, f"{path}.{key}"))
        return mismatches

    if isinstance(expected, list):
        if not isinstance(actual, list):
            return [f"{path}: expected an array, got {type(actual).__name__}"]
        unused = list(range(len(actual)))
        mismatches = []
        for index, item in enumerate(expected):
            match = next((i for i in unused if not json_like(actual[i], item)), None)
            if match is None:
                mismatches.append(f"{path}[{index}]: no matching element for {item!r}")
            else:
                unused.remove(match)
        return mismatches

    if isinstance(expected, bool) or isinstance(actual, bool):
        if type(expected) is not type(actual) or expected != actual:
            return [f"{path}: expected {expected!r}, got {actual!r}"]
        return []

    if actual != expected:
        return [f"{path}: expected {expected!r}, got {actual!r}"]
    return []


class ProbeResult(BaseModel):
    """Outcome of a probe whose expectations all held.

    Attributes:
        method: HTTP method sent.
        path: Request path relative to the base URL.
        status_code: Response status.
        body: Parsed JSON body, or None when the body was not JSON.
        set_cookie: Every Set-Cookie header value, in response order.
        elapsed_ms: Wall time of the request.
    """

    method: str
    path: str
    status_code: int
    body: Any = None
    set_cookie: list[str] = Field(default_factory=list)
    elapsed_ms: float = 0.0


class HttpProbe:
    """Issues single requests against the deployment under test.

    Attributes:
        config: HarnessConfig instance with base URL and timeout.
        requests_sent: Number of requests issued through this probe.

    Example:
        async with HttpProbe.create(config) as probe:
            result = await probe.send(
                "GET", "/user/protectedRoute",
                headers=session.headers(),
                expect_status=200,
                expect_json_like={"success": True},
            )
    """

    def __init__(self, config: HarnessConfig, client: httpx.AsyncClient) -> None:
        """Bind the probe to an open client.

        Note:
            Use the ``create()`` class method so the client gets closed.
        """
        self.config = config
        self._client = client
        self.requests_sent = 0

    @classmethod
    @asynccontextmanager
    async def create(
        cls,
        config: HarnessConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> AsyncGenerator[Self, None]:
        """Open the underlying client for the lifetime of the block.

        Args:
            config: Optional HarnessConfig. Uses singleton if not provided.
            transport: Optional transport override (``httpx.MockTransport``
                in tests).

        Yields:
            Ready HttpProbe instance.
        """
        if config is None:
            config = get_config()

        client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.request_timeout_sec),
            follow_redirects=False,
            transport=transport,
        )
        log.debug(
            "HTTP client opened",
            base_url=config.base_url,
            timeout_ms=config.request_timeout_ms,
        )
        try:
            yield cls(config, client)
        finally:
            await client.aclose()
            log.debug("HTTP client closed")

    async def send(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json: Any = None,
        form: dict[str, str] | None = None,
        expect_status: int,
        expect_json_like: Any = None,
    ) -> ProbeResult:
        """Send one request and assert its declared status and shape.

        Args:
            method: HTTP method.
            path: Path relative to the base URL.
            headers: Extra request headers (the session Cookie, usually).
            json: JSON request body.
            form: URL-encoded form body.
            expect_status: Exact status code the step requires.
            expect_json_like: Minimum shape of the JSON body, or None.

        Returns:
            ProbeResult of the matching response.

        Raises:
            ProbeTransportError: On network failure or timeout.
            MalformedRequestError: If the URL cannot be built from ``path``.
            StatusMismatchError: If the status differs from ``expect_status``.
            ShapeMismatchError: If the body lacks the declared shape.
        """
        method = method.upper()
        started = time.perf_counter()
        self.requests_sent += 1

        try:
            response = await self._client.request(
                method,
                path,
                headers=headers,
                json=json,
                data=form,
            )
        except httpx.TimeoutException as exc:
            raise ProbeTransportError(
                method,
                path,
                reason=f"timeout after {self.config.request_timeout_ms}ms",
            ) from exc
        except httpx.HTTPError as exc:
            raise ProbeTransportError(method, path, reason=f"{type(exc).__name__}: {exc}") from exc
        except httpx.InvalidURL as exc:
            # not an HTTPError; raised while building the request
            raise MalformedRequestError(method, path, reason=str(exc)) from exc

        elapsed_ms = (time.perf_counter() - started) * 1000
        body = self._parse_body(response)

        log.debug(
            "Probe response received",
            method=method,
            path=path,
            status_code=response.status_code,
            elapsed_ms=round(elapsed_ms, 1),
        )

        if response.status_code != expect_status:
            raise StatusMismatchError(
                method,
                path,
                expected=expect_status,
                actual=response.status_code,
                body=body if body is not None else response.text[:500],
            )

        if expect_json_like is not None:
            if body is None:
                raise ShapeMismatchError(method, path, ["$: response body is not JSON"])
            mismatches = json_like(body, expect_json_like)
            if mismatches:
                raise ShapeMismatchError(method, path, mismatches)

        return ProbeResult(
            method=method,
            path=path,
            status_code=response.status_code,
            body=body,
            set_cookie=response.headers.get_list("set-cookie"),
            elapsed_ms=elapsed_ms,
        )

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        """Decode a JSON body, returning None for empty or non-JSON bodies."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None
