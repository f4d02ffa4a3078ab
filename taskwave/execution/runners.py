"""
Task runners for taskwave.

A runner is any callable taking a task payload. This module ships the
shell adapter used by the CLI.
"""

import asyncio
import contextlib
import os
import shlex
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from loguru import logger


class _PayloadFields(dict):
    """Format mapping that reports unknown template fields clearly."""

    def __missing__(self, key: str) -> str:
        raise ValueError(f"command template references unknown field '{key}'")


class ShellCommandRunner:
    """
    Run a shell command per task.

    The command template is formatted with the payload's fields, each value
    shell-quoted, and executed through the system shell. Exit status 0 is
    success; otherwise the tail of stderr becomes the failure message.
    Literal braces in the template must be doubled, e.g.
    ``awk '{{print $1}}' {id}.txt``.

    Example:
        >>> runner = ShellCommandRunner("make {id}")
        >>> executor = ParallelExecutor(runner, max_concurrent=4)
    """

    def __init__(
        self,
        command_template: str,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ):
        self.command_template = command_template
        self.cwd = str(cwd) if cwd else None
        self.env = {**os.environ, **env} if env else None

    def format_command(self, payload: Any) -> str:
        """Substitute payload fields into the command template."""
        if isinstance(payload, Mapping):
            fields = _PayloadFields(
                {str(k): shlex.quote(self._as_text(v)) for k, v in payload.items()}
            )
        else:
            fields = _PayloadFields(payload=shlex.quote(self._as_text(payload)))
        return self.command_template.format_map(fields)

    @staticmethod
    def _as_text(value: Any) -> str:
        if isinstance(value, list | tuple):
            return " ".join(str(v) for v in value)
        return "" if value is None else str(value)

    async def __call__(self, payload: Any) -> tuple[bool, str | None]:
        command = self.format_command(payload)
        logger.debug(f"Running: {command}")

        process = await asyncio.create_subprocess_shell(
            command,
            cwd=self.cwd,
            env=self.env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            # Timed out or aborted by the executor
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
            raise

        output = stdout.decode("utf-8", errors="replace").strip()
        error_output = stderr.decode("utf-8", errors="replace").strip()

        if output:
            logger.debug(f"[{command}] stdout: {output[:2000]}")

        if process.returncode == 0:
            return True, output[:5000] or None

        message = f"command exited with status {process.returncode}"
        if error_output:
            message = f"{message}: {error_output[-2000:]}"
        return False, message
