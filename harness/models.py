"""Data model shared by the bootstrap phase and the scenario groups.

- TestIdentity: a candidate remote account.
- Session: the cookie proving an authenticated identity, bound to it.
- ResourceRole: the logical roles whose identifiers steps hand to each other.
"""

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config.settings import HarnessConfig


def now_ms() -> int:
    """Milliseconds since the epoch; the stamp used in test account and resource names."""
    return time.time_ns() // 1_000_000


class ResourceRole(str, Enum):
    """Logical role of a tracked resource."""

    CATEGORY = "category"
    TRANSACTION = "transaction"
    GOAL = "goal"


class TestIdentity(BaseModel):
    """A candidate test account.

    Identities are derived from a millisecond timestamp, which makes them
    unique across runs (not within one run; the bootstrapper perturbs the
    timestamp for replacement identities).

    Attributes:
        username: Display name sent on sign-up.
        email: Login e-mail.
        password: Login password.
        mobile: Mobile number sent on sign-up.
    """

    # keep pytest from collecting this as a test class
    __test__ = False

    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    mobile: str

    @classmethod
    def from_timestamp(cls, timestamp_ms: int, config: HarnessConfig) -> "TestIdentity":
        """Build the identity for a given millisecond timestamp.

        Args:
            timestamp_ms: Milliseconds since the epoch (possibly perturbed).
            config: Supplies the password, mobile number and e-mail domain.

        Returns:
            A new TestIdentity.
        """
        return cls(
            username=f"test_user_{timestamp_ms}",
            email=f"test_{timestamp_ms}@{config.identity_email_domain}",
            password=config.identity_password,
            mobile=config.identity_mobile,
        )

    def signup_payload(self) -> dict[str, str]:
        """JSON body for ``POST /user/signup``."""
        return self.model_dump()

    def signin_payload(self) -> dict[str, str]:
        """JSON body for ``POST /user/signin``."""
        return {"email": self.email, "password": self.password}


class Session(BaseModel):
    """Authenticated session for exactly one identity.

    Attributes:
        cookie: ``name=value`` pair sent back in the Cookie header.
        identity: The account the cookie was issued for.
    """

    model_config = ConfigDict(frozen=True)

    cookie: str
    identity: TestIdentity

    @field_validator("cookie")
    @classmethod
    def require_cookie(cls, value: str) -> str:
        """Reject empty or whitespace-only cookies."""
        value = value.strip()
        if not value:
            raise ValueError("Session cookie cannot be empty")
        return value

    def headers(self) -> dict[str, str]:
        """Headers attaching this session to a request."""
        return {"Cookie": self.cookie}


def session_cookie_from(set_cookie_headers: list[str]) -> str | None:
    """Pick the session cookie out of a sign-in response.

    The first Set-Cookie entry wins; cookie attributes (Path, HttpOnly,
    Expires...) are dropped so only the ``name=value`` pair is sent back.

    Args:
        set_cookie_headers: Every Set-Cookie value of the response, in order.

    Returns:
        The ``name=value`` pair, or None when no usable cookie was sent.
    """
    if not set_cookie_headers:
        return None
    pair = set_cookie_headers[0].split(";", 1)[0].strip()
    return pair or None


def created_id(body: Any, key: str) -> str | None:
    """Extract ``body[key]["_id"]`` from a creation response.

    Args:
        body: Parsed JSON body (any type; non-dicts yield None).
        key: Envelope key of the created resource (``category``...).

    Returns:
        The identifier as a string, or None when absent.
    """
    if not isinstance(body, dict):
        return None
    resource = body.get(key)
    if not isinstance(resource, dict):
        return None
    value = resource.get("_id")
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    return str(value)
