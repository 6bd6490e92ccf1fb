"""In-memory registry of identifiers returned by creation calls.

Each scenario group owns one tracker. A creation step records the id it
got back; the steps that follow in the same group read it. The tracker
holds the latest id per role, not a history.
"""

from harness.exceptions import MissingResourceIdError
from harness.logger import get_logger
from harness.models import ResourceRole

log = get_logger(__name__)


class ResourceLifecycleTracker:
    """Latest identifier per resource role, scoped to one scenario group.

    Attributes:
        scope: Name of the owning group, used in errors and logs.

    Example:
        tracker = ResourceLifecycleTracker(scope="Category Management")
        tracker.record(ResourceRole.CATEGORY, body["category"]["_id"])
        path = f"/category/deleteCategory/{tracker.get(ResourceRole.CATEGORY)}"
    """

    def __init__(self, scope: str) -> None:
        self.scope = scope
        self._ids: dict[ResourceRole, str] = {}

    def record(self, role: ResourceRole, resource_id: str | None) -> str:
        """Capture the id returned by a successful creation call.

        Args:
            role: Role of the created resource.
            resource_id: Identifier from the response body.

        Returns:
            The recorded identifier, unchanged.

        Raises:
            MissingResourceIdError: If the id is None or empty. A create call
                that succeeds without an id fails at the point of creation.
        """
        if resource_id is None or not str(resource_id).strip():
            raise MissingResourceIdError(
                role=role.value,
                scope=self.scope,
                reason="creation response carried no identifier",
            )

        previous = self._ids.get(role)
        self._ids[role] = resource_id
        log.debug(
            "Resource id recorded",
            scope=self.scope,
            role=role.value,
            resource_id=resource_id,
            replaced=previous,
        )
        return resource_id

    def get(self, role: ResourceRole) -> str:
        """Return the latest id recorded for a role.

        Raises:
            MissingResourceIdError: If the role's creation step never
                succeeded. The dependent step fails instead of being skipped.
        """
        try:
            return self._ids[role]
        except KeyError:
            raise MissingResourceIdError(
                role=role.value,
                scope=self.scope,
                reason="the step that creates it has not succeeded",
            ) from None

    def clear(self, role: ResourceRole) -> None:
        """Forget the id of a role, typically after it was deleted."""
        if self._ids.pop(role, None) is not None:
            log.debug("Resource id cleared", scope=self.scope, role=role.value)

    def snapshot(self) -> dict[str, str]:
        """Current ids keyed by role name.

        Deleted resources are cleared, so at the end of a group this is
        what the group left behind on the server.
        """
        return {role.value: resource_id for role, resource_id in self._ids.items()}

    def __contains__(self, role: ResourceRole) -> bool:
        return role in self._ids
