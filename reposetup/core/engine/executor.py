"""
Engine executor — fail-fast plan execution.

A provisioning plan is an ordered list of commands. The engine runs
them one at a time through the adapter registry and stops at the
first failure; whatever already ran stays applied (no rollback).

Flow:
    plan → execute action → receipt → (failed? stop) → next action
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from reposetup.adapters.registry import AdapterRegistry
from reposetup.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


@dataclass
class ExecutionPlan:
    """An ordered set of actions for one packaging family."""

    operation_id: str = ""
    procedure: str = ""             # "debian_family" / "rpm_family"
    install: bool = False
    actions: list[Action] = field(default_factory=list)

    @property
    def total_actions(self) -> int:
        return len(self.actions)

    def add(self, action_id: str, argv: list[str], **params) -> Action:
        """Append a command step and return it."""
        action = Action(
            id=action_id,
            name=" ".join(argv),
            adapter="command",
            params={"argv": argv, **params},
        )
        self.actions.append(action)
        return action

    def action_ids(self) -> list[str]:
        return [a.id for a in self.actions]


@dataclass
class ExecutionReport:
    """Result of executing a plan."""

    operation_id: str = ""
    procedure: str = ""
    planned: int = 0
    receipts: list[Receipt] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.status == "skipped")

    @property
    def not_run(self) -> int:
        """Planned actions never reached because an earlier one failed."""
        return self.planned - self.total

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def first_failure(self) -> Receipt | None:
        return next((r for r in self.receipts if r.failed), None)

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    @property
    def exit_code(self) -> int:
        """Process exit status: 0, or the failing command's own status."""
        failure = self.first_failure
        if failure is None:
            return 0
        code = failure.return_code
        return code if isinstance(code, int) and code > 0 else 1


def execute_plan(
    plan: ExecutionPlan,
    registry: AdapterRegistry,
    dry_run: bool = False,
) -> ExecutionReport:
    """Execute the actions of a plan in order, stopping at the first failure.

    Args:
        plan: The execution plan.
        registry: Adapter registry for dispatch.
        dry_run: If True, validate and describe but don't execute.

    Returns:
        ExecutionReport with the receipts of every action that ran.
    """
    report = ExecutionReport(
        operation_id=plan.operation_id,
        procedure=plan.procedure,
        planned=plan.total_actions,
    )

    for step, action in enumerate(plan.actions, start=1):
        receipt = registry.execute_action(action=action, dry_run=dry_run)
        report.receipts.append(receipt)

        status_marker = "✓" if receipt.ok else "✗" if receipt.failed else "⊘"
        logger.debug(
            "%s [%d/%d] %s → %s",
            status_marker,
            step,
            plan.total_actions,
            action.id,
            receipt.status,
        )

        if receipt.failed:
            break

    logger.info(
        "%s %s: %s (%d ok, %d skipped, %d failed, %d not run)",
        report.procedure or "plan",
        report.operation_id,
        report.status,
        report.succeeded,
        report.skipped,
        report.failed,
        report.not_run,
    )
    return report


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
