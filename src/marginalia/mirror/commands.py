"""Blocking external-process invocation with a hard timeout."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int | None = None


class CommandRunner:
    """Runs host tools (osascript, mdls, setfattr, ...) and never raises."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    def run(self, args: list[str], *, input: str | None = None) -> CommandResult:
        """Run *args* to completion (or timeout) and report the outcome."""
        try:
            proc = subprocess.run(
                args,
                input=input,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.warning("%s timed out after %.1fs", args[0], self.timeout)
            return CommandResult(ok=False, stderr="timeout")
        except OSError as exc:
            logger.debug("%s could not be started: %s", args[0], exc)
            return CommandResult(ok=False, stderr=str(exc))

        if proc.returncode != 0:
            logger.debug("%s exited %d: %s", args[0], proc.returncode, proc.stderr.strip())
        return CommandResult(
            ok=proc.returncode == 0,
            stdout=proc.stdout,
            stderr=proc.stderr,
            returncode=proc.returncode,
        )

    def spawn(self, args: list[str]) -> bool:
        """Start *args* in the background without waiting (fire-and-forget)."""
        try:
            subprocess.Popen(
                args,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            logger.debug("%s could not be started: %s", args[0], exc)
            return False
        return True
