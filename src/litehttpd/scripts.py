from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class ScriptInvocation:
    script: Path
    env: dict[str, str]


@dataclass
class ScriptResult:
    ok: bool
    stdout: bytes
    stderr: bytes
    returncode: int | None


def build_script_env(method: str, script: Path, headers: dict[str, str]) -> dict[str, str]:
    """Project request headers into a fresh child environment.

    ``X-Token`` becomes ``HTTP_X-TOKEN`` plus the shell-readable alias
    ``HTTP_X_TOKEN``. Headers that fold onto the same variable collapse and
    the last one wins.
    """
    env: dict[str, str] = {}
    for name, value in headers.items():
        key = f"HTTP_{name.upper()}"
        env[key] = value
        alias = key.replace("-", "_")
        if alias != key:
            env[alias] = value
    env["METHOD"] = method
    env["PATH"] = str(script)
    return env


def build_invocation(method: str, script: Path, headers: dict[str, str]) -> ScriptInvocation:
    return ScriptInvocation(script=script, env=build_script_env(method, script, headers))


def run_script(invocation: ScriptInvocation, timeout: float | None = None) -> ScriptResult:
    """Execute a script and wait for it to exit.

    Blocks until the child exits when ``timeout`` is None; there is no upper
    bound on how long that takes. Callers on an event loop must run this in
    a worker thread.
    """
    try:
        completed = subprocess.run(
            [str(invocation.script), invocation.script.name],
            cwd=str(invocation.script.parent),
            env=invocation.env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        logger.warning("Script %s timed out after %ss", invocation.script, timeout)
        return ScriptResult(ok=False, stdout=exc.stdout or b"", stderr=exc.stderr or b"", returncode=None)
    except (OSError, ValueError) as exc:
        logger.warning("Failed to launch script %s: %s", invocation.script, exc)
        return ScriptResult(ok=False, stdout=b"", stderr=b"", returncode=None)

    if completed.returncode != 0:
        logger.warning("Script %s exited with status %s", invocation.script, completed.returncode)
    return ScriptResult(
        ok=completed.returncode == 0,
        stdout=completed.stdout,
        stderr=completed.stderr,
        returncode=completed.returncode,
    )
