"""
Mock command adapter — runs nothing, records what would have run.

Subclasses CommandAdapter so validation, elevation wrapping and dry-run
descriptions are the real ones; only ``execute`` is faked. Steps can be
scripted to fail with a given exit status and stderr.
"""

from __future__ import annotations

import shlex

from reposetup.adapters.base import ExecutionContext
from reposetup.adapters.shell.command import CommandAdapter
from reposetup.core.models.action import Receipt


class MockCommandAdapter(CommandAdapter):
    """Command adapter double for plans and the CLI."""

    def __init__(self) -> None:
        self._failures: dict[str, tuple[int, str]] = {}
        self.call_log: list[ExecutionContext] = []

    @property
    def call_count(self) -> int:
        return len(self.call_log)

    @property
    def executed_ids(self) -> list[str]:
        """Step ids in execution order."""
        return [ctx.action.id for ctx in self.call_log]

    @property
    def commands(self) -> list[str]:
        """Elevated command lines in execution order."""
        return [shlex.join(self.command_line(ctx)) for ctx in self.call_log]

    def fail(self, action_id: str, return_code: int = 1, stderr: str = "") -> None:
        """Make step ``action_id`` exit with ``return_code``."""
        self._failures[action_id] = (return_code, stderr)

    def execute(self, context: ExecutionContext) -> Receipt:
        self.call_log.append(context)
        command = shlex.join(self.command_line(context))

        if context.action.id in self._failures:
            return_code, stderr = self._failures[context.action.id]
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=stderr or f"Command exited with code {return_code}",
                metadata={"command": command, "return_code": return_code},
            )

        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            metadata={"command": command, "return_code": 0},
        )
