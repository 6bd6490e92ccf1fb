"""Concrete scenario groups for the CFP server.

Each group reproduces one block of the service's contract:

    - UserAuthentication: the session opens the protected route.
    - CategoryManagement: create, list, delete a category.
    - TransactionManagement: with its own category, create, list, update
      and delete a transaction.
    - GoalsAndLimitsManagement: create, list, update a goal/limit.

Every request carries the run's session cookie. Ids flow only between
steps of the same group, through the group's own tracker.
"""

from datetime import UTC, datetime

from harness.models import ResourceRole, created_id, now_ms
from harness.scenario import ScenarioGroup, Step, SuiteContext

SUCCESS = {"success": True}


def _iso_now() -> str:
    """UTC timestamp in ``2024-01-31T12:00:00.000Z`` form."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class UserAuthentication(ScenarioGroup):
    name = "User Authentication"

    def steps(self) -> list[Step]:
        return [("should access protected route successfully", self.access_protected_route)]

    async def access_protected_route(self) -> None:
        await self.context.call(
            "GET",
            "/user/protectedRoute",
            expect_status=200,
            expect_json_like=SUCCESS,
        )


class CategoryManagement(ScenarioGroup):
    """Category create → list → delete, deleting exactly the created id."""

    name = "Category Management"

    def steps(self) -> list[Step]:
        return [
            ("should create a new category", self.create_category),
            ("should list all categories", self.list_categories),
            ("should delete the created category", self.delete_category),
        ]

    async def create_category(self) -> None:
        result = await self.context.call(
            "POST",
            "/category/addCategory",
            json={"categoryName": f"Test Category {now_ms()}", "categoryType": "expense"},
            expect_status=200,
            expect_json_like=SUCCESS,
        )
        self.tracker.record(ResourceRole.CATEGORY, created_id(result.body, "category"))

    async def list_categories(self) -> None:
        await self.context.call(
            "GET",
            "/category/getCategory",
            expect_status=200,
            expect_json_like=SUCCESS,
        )

    async def delete_category(self) -> None:
        category_id = self.tracker.get(ResourceRole.CATEGORY)
        await self.context.call(
            "DELETE",
            f"/category/deleteCategory/{category_id}",
            expect_status=200,
            expect_json_like=SUCCESS,
        )
        self.tracker.clear(ResourceRole.CATEGORY)


class TransactionManagement(ScenarioGroup):
    """Transaction lifecycle against a category created privately in setup.

    The category is not deleted afterwards; the remote account keeps it.
    """

    name = "Transaction Management"

    def steps(self) -> list[Step]:
        return [
            ("should create a new transaction", self.create_transaction),
            ("should list all transactions", self.list_transactions),
            ("should update the transaction", self.update_transaction),
            ("should delete the transaction", self.delete_transaction),
        ]

    async def setup(self) -> None:
        result = await self.context.call(
            "POST",
            "/category/addCategory",
            json={"categoryName": f"Transaction Category {now_ms()}", "categoryType": "expense"},
            expect_status=200,
        )
        self.tracker.record(ResourceRole.CATEGORY, created_id(result.body, "category"))

    async def create_transaction(self) -> None:
        result = await self.context.call(
            "POST",
            "/transaction/addTransaction",
            form={
                "type": "expense",
                "category": self.tracker.get(ResourceRole.CATEGORY),
                "date": _iso_now(),
                "note": "Test transaction",
                "amount": "100.50",
                "currency": self.context.config.transaction_currency,
            },
            expect_status=200,
            expect_json_like=SUCCESS,
        )
        self.tracker.record(ResourceRole.TRANSACTION, created_id(result.body, "transaction"))

    async def list_transactions(self) -> None:
        await self.context.call(
            "GET",
            "/transaction/getTransaction",
            expect_status=200,
            expect_json_like=SUCCESS,
        )

    async def update_transaction(self) -> None:
        transaction_id = self.tracker.get(ResourceRole.TRANSACTION)
        await self.context.call(
            "PUT",
            f"/transaction/editTransaction/{transaction_id}",
            form={"note": "Updated test transaction", "amount": "150.75"},
            expect_status=200,
            expect_json_like=SUCCESS,
        )

    async def delete_transaction(self) -> None:
        transaction_id = self.tracker.get(ResourceRole.TRANSACTION)
        await self.context.call(
            "DELETE",
            f"/transaction/deleteTransaction/{transaction_id}",
            expect_status=200,
            expect_json_like=SUCCESS,
        )
        self.tracker.clear(ResourceRole.TRANSACTION)


class GoalsAndLimitsManagement(ScenarioGroup):
    name = "Goals and Limits Management"

    def steps(self) -> list[Step]:
        return [
            ("should create a new goal/limit", self.create_goal),
            ("should list all goals/limits", self.list_goals),
            ("should update the goal/limit", self.update_goal),
        ]

    async def create_goal(self) -> None:
        result = await self.context.call(
            "POST",
            "/meta/goals-limits",
            json={"goal": 1000, "limit": 500},
            expect_status=200,
            expect_json_like=SUCCESS,
        )
        self.tracker.record(ResourceRole.GOAL, created_id(result.body, "goalLimit"))

    async def list_goals(self) -> None:
        await self.context.call(
            "GET",
            "/meta/goals-limits",
            expect_status=200,
            expect_json_like=SUCCESS,
        )

    async def update_goal(self) -> None:
        goal_id = self.tracker.get(ResourceRole.GOAL)
        await self.context.call(
            "PUT",
            f"/meta/goals-limits/{goal_id}",
            json={"goal": 2000, "limit": 800},
            expect_status=200,
            expect_json_like=SUCCESS,
        )


DEFAULT_GROUPS: tuple[type[ScenarioGroup], ...] = (
    UserAuthentication,
    CategoryManagement,
    TransactionManagement,
    GoalsAndLimitsManagement,
)


def build_groups(
    context: SuiteContext,
    group_types: tuple[type[ScenarioGroup], ...] = DEFAULT_GROUPS,
) -> list[ScenarioGroup]:
    """Instantiate groups in suite order, each with a fresh tracker."""
    return [group_type(context) for group_type in group_types]
