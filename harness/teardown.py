"""Best-effort sign-out after the suite.

Teardown failures say nothing about the service under test, so they are
logged and dropped; ``sign_out`` never raises.
"""

from harness.logger import get_logger
from harness.models import Session
from harness.probe import HttpProbe

log = get_logger(__name__)


class TeardownCoordinator:
    """Signs the run's session out exactly once per invocation of the suite.

    Attributes:
        probe: HttpProbe used for the sign-out request.
        invocations: Number of times ``sign_out`` was called.
    """

    def __init__(self, probe: HttpProbe) -> None:
        self.probe = probe
        self.invocations = 0

    async def sign_out(self, session: Session | None) -> bool:
        """Sign the session out if one was ever acquired.

        Args:
            session: The run's session, or None if bootstrap never produced one.

        Returns:
            True if the service confirmed the sign-out, False otherwise.
        """
        self.invocations += 1

        if session is None:
            log.info("No session acquired, skipping signout")
            return False

        try:
            await self.probe.send(
                "GET",
                "/user/signout",
                headers=session.headers(),
                expect_status=201,
            )
        except Exception as exc:
            log.warning(
                "Signout failed, but continuing",
                email=session.identity.email,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return False

        log.info("Signed out", email=session.identity.email)
        return True
