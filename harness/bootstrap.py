"""Credential bootstrap: guarantee one authenticated session per run.

Remote test accounts outlive the run, so "account already exists" is the
normal outcome of sign-up rather than an error. The procedure is therefore:

    1. Derive an identity from the current millisecond timestamp.
    2. Sign it up; any failure is logged and ignored.
    3. Sign in. Success requires HTTP 200 *and* a Set-Cookie header.
    4. If sign-in failed for any reason, derive a fresh identity from a new
       timestamp plus a random perturbation, sign it up (must succeed) and
       sign in (must succeed). The fresh identity replaces the first one.

With ``fallback_attempts`` greater than one, step 4 is repeated with
another fresh identity until the strikes run out; only the last strike's
failure is fatal.
"""

import random
from typing import Callable

from config.settings import HarnessConfig
from harness.exceptions import BootstrapError, HarnessError, MissingSessionCookieError
from harness.logger import get_logger
from harness.models import Session, TestIdentity, now_ms, session_cookie_from
from harness.probe import HttpProbe

log = get_logger(__name__)


class CredentialBootstrapper:
    """Produces the run's session, replacing unusable identities.

    Attributes:
        probe: HttpProbe used for sign-up and sign-in.
        config: HarnessConfig with identity defaults and strike count.
        identity: Identity currently in use; after a fallback it refers to
            the replacement account, never to the abandoned one.
        tried: Every identity attempted so far, in order.

    Example:
        bootstrapper = CredentialBootstrapper(probe, config)
        session = await bootstrapper.acquire_session()
    """

    def __init__(
        self,
        probe: HttpProbe,
        config: HarnessConfig,
        clock: Callable[[], int] = now_ms,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the bootstrapper.

        Args:
            probe: Open HttpProbe.
            config: HarnessConfig instance.
            clock: Millisecond timestamp source.
            rng: Random source for fallback perturbation.
        """
        self.probe = probe
        self.config = config
        self._clock = clock
        self._rng = rng or random.Random()
        self.identity: TestIdentity | None = None
        self.tried: list[TestIdentity] = []

    async def acquire_session(self) -> Session:
        """Return a session for a freshly created or existing test account.

        Returns:
            Non-empty Session bound to ``self.identity``.

        Raises:
            BootstrapError: If no identity could be both created and signed
                in after every fallback strike.
        """
        self.identity = self._new_identity(perturb=False)

        await self._try_signup(self.identity)
        try:
            cookie = await self._signin(self.identity)
        except HarnessError as exc:
            log.warning(
                "Sign-in failed, switching to a fresh identity",
                email=self.identity.email,
                error_type=type(exc).__name__,
                error=exc.message,
            )
            cookie = await self._fallback()

        return self._build_session(cookie)

    async def _fallback(self) -> str:
        """Try fresh identities until one signs up and signs in."""
        attempts = self.config.fallback_attempts
        for strike in range(1, attempts + 1):
            candidate = self._new_identity(perturb=True)
            log.info(
                "Creating fallback identity",
                email=candidate.email,
                strike=strike,
                of=attempts,
            )
            try:
                await self._force_signup(candidate)
                cookie = await self._signin(candidate)
            except HarnessError as exc:
                if strike == attempts:
                    raise BootstrapError(
                        reason=f"fallback identity unusable: {exc.message}",
                        email=candidate.email,
                    ) from exc
                log.warning(
                    "Fallback identity unusable, trying another",
                    email=candidate.email,
                    error_type=type(exc).__name__,
                )
                continue

            self.identity = candidate
            return cookie

        # fallback_attempts is validated >= 1, the loop always returns or raises
        raise BootstrapError(reason="no fallback attempts configured")

    def _new_identity(self, perturb: bool) -> TestIdentity:
        """Derive an identity not tried before in this run."""
        timestamp = self._clock()
        if perturb:
            timestamp += self._rng.randint(0, 999)
        while any(t.username == f"test_user_{timestamp}" for t in self.tried):
            timestamp += self._rng.randint(1, 999)

        identity = TestIdentity.from_timestamp(timestamp, self.config)
        self.tried.append(identity)
        return identity

    async def _try_signup(self, identity: TestIdentity) -> None:
        """Sign up, tolerating every failure (the account may already exist)."""
        log.info("Attempting signup", email=identity.email)
        try:
            await self._force_signup(identity)
        except HarnessError as exc:
            log.warning(
                "Signup failed, user might exist",
                email=identity.email,
                error_type=type(exc).__name__,
                error=exc.message,
            )
            return
        log.info("Signup successful", email=identity.email)

    async def _force_signup(self, identity: TestIdentity) -> None:
        await self.probe.send(
            "POST",
            "/user/signup",
            json=identity.signup_payload(),
            expect_status=200,
        )

    async def _signin(self, identity: TestIdentity) -> str:
        """Sign in and return the session cookie.

        Raises:
            ProbeError: If the request fails or is not HTTP 200.
            MissingSessionCookieError: If HTTP 200 came without a cookie.
        """
        log.info("Attempting signin", email=identity.email)
        result = await self.probe.send(
            "POST",
            "/user/signin",
            json=identity.signin_payload(),
            expect_status=200,
        )
        cookie = session_cookie_from(result.set_cookie)
        if cookie is None:
            raise MissingSessionCookieError(email=identity.email)
        log.info("Cookie extracted successfully", email=identity.email)
        return cookie

    def _build_session(self, cookie: str) -> Session:
        if not cookie or not cookie.strip() or self.identity is None:
            raise BootstrapError(
                reason="no session cookie obtained",
                email=self.identity.email if self.identity else None,
            )
        return Session(cookie=cookie, identity=self.identity)
