"""
Command adapter — run one external program, elevated if needed.

Every package-manager, download, and file-writing step of a
provisioning plan goes through here. The argv is a list (never a shell
string); the elevation strategy decides the prefix.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time

from reposetup.adapters.base import Adapter, ExecutionContext
from reposetup.core.errors import PrivilegeUnavailable
from reposetup.core.models.action import Receipt
from reposetup.core.models.host import ElevationStrategy
from reposetup.core.observability.logging_config import COMMAND_LOGGER, OUTPUT_LOGGER

command_log = logging.getLogger(COMMAND_LOGGER)
output_log = logging.getLogger(OUTPUT_LOGGER)

# Keep receipts small; apt/dnf can print megabytes.
_OUTPUT_TAIL = 2000


class CommandAdapter(Adapter):
    """Execute a command and capture its output.

    Action params:
        argv (list[str]): The command to execute.
        elevation (ElevationStrategy): How to gain root (default: none).
        input (str): Text fed to the command's stdin (default: none).
        timeout (int): Timeout in seconds (default: no timeout).
    """

    @property
    def name(self) -> str:
        return "command"

    def command_line(self, context: ExecutionContext) -> list[str]:
        """The argv that will actually be executed."""
        argv = list(context.action.params.get("argv", []))
        strategy = ElevationStrategy(
            context.action.params.get("elevation", ElevationStrategy.NONE)
        )
        return strategy.wrap(argv)

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.action.params.get("argv")
        if not argv:
            return False, "Missing required param: 'argv'"
        if not isinstance(argv, list) or not all(isinstance(a, str) for a in argv):
            return False, "Param 'argv' must be a list of strings"

        try:
            self.command_line(context)
        except (PrivilegeUnavailable, ValueError) as e:
            return False, str(e)

        return True, ""

    def describe(self, context: ExecutionContext) -> str:
        line = shlex.join(self.command_line(context))
        stdin = context.action.params.get("input")
        if stdin:
            return f"{line} <<< {stdin.rstrip()!r}"
        return line

    def execute(self, context: ExecutionContext) -> Receipt:
        argv = self.command_line(context)
        stdin = context.action.params.get("input")
        timeout = context.action.params.get("timeout")
        command = shlex.join(argv)

        command_log.info("%s", command)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                input=stdin,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {timeout}s",
                metadata={"command": command, "timeout": timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Cannot execute {argv[0]}: {e}",
                metadata={"command": command, "return_code": 127},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = result.stdout.strip()[-_OUTPUT_TAIL:] if result.stdout else ""
        stderr = result.stderr.strip()[-_OUTPUT_TAIL:] if result.stderr else ""

        for line in (output + "\n" + stderr).splitlines():
            if line.strip():
                output_log.debug("%s", line)

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=output,
                duration_ms=elapsed_ms,
                metadata={
                    "command": command,
                    "return_code": result.returncode,
                    "stderr": stderr,
                },
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or f"Command exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={
                "command": command,
                "return_code": result.returncode,
                "stdout": output,
            },
        )
