"""
Command Executor - runs exactly one approved shell command.

The executor does not look at the command text. All safety comes from
the approval token: a command runs only if a human granted it and the
token has not been used or expired.
"""

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from vibecontrol.approval import ApprovalRegistry
from vibecontrol.config import ExecutorConfig
from vibecontrol.errors import ExecutionFailure, PermissionDenied
from vibecontrol.sandbox import PathSandbox

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024
_POSIX = os.name == "posix"


@dataclass
class ProcessResult:
    """Captured result of a finished (or killed) process."""
    stdout: str
    stderr: str
    exit_code: int | None
    timed_out: bool = False
    overflowed: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and not self.overflowed


async def run_process(
    command: str | list[str],
    cwd: str | Path,
    timeout: float,
    max_output_bytes: int,
) -> ProcessResult:
    """
    Run a command to completion with a wall-clock and output ceiling.

    A string is run through the shell; a list is executed directly.
    On timeout or overflow the whole process group is killed and
    whatever output was captured so far is returned.
    """
    kwargs: dict[str, Any] = {
        "cwd": str(cwd),
        "stdout": asyncio.subprocess.PIPE,
        "stderr": asyncio.subprocess.PIPE,
        "start_new_session": _POSIX,
    }
    if isinstance(command, str):
        proc = await asyncio.create_subprocess_shell(command, **kwargs)
    else:
        proc = await asyncio.create_subprocess_exec(*command, **kwargs)

    stdout = bytearray()
    stderr = bytearray()
    overflow = asyncio.Event()

    async def drain(stream: asyncio.StreamReader, buffer: bytearray) -> None:
        while not overflow.is_set():
            chunk = await stream.read(_CHUNK_SIZE)
            if not chunk:
                return
            buffer.extend(chunk)
            if len(stdout) + len(stderr) > max_output_bytes:
                overflow.set()

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    reader = asyncio.gather(drain(proc.stdout, stdout), drain(proc.stderr, stderr))
    watcher = asyncio.ensure_future(overflow.wait())

    done, _ = await asyncio.wait(
        {reader, watcher}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
    )
    timed_out = not done
    if reader in done and not overflow.is_set():
        try:
            await asyncio.wait_for(proc.wait(), timeout=max(0.0, deadline - loop.time()))
        except asyncio.TimeoutError:
            timed_out = True

    if timed_out or overflow.is_set():
        _kill(proc)
        await proc.wait()

    for task in (reader, watcher):
        task.cancel()
    await asyncio.gather(reader, watcher, return_exceptions=True)

    return ProcessResult(
        stdout=stdout[:max_output_bytes].decode("utf-8", errors="replace"),
        stderr=stderr[:max_output_bytes].decode("utf-8", errors="replace"),
        exit_code=proc.returncode,
        timed_out=timed_out,
        overflowed=overflow.is_set(),
    )


def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        if _POSIX:
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass


class CommandExecutor:
    """Runs approved commands inside the workspace."""

    def __init__(
        self,
        registry: ApprovalRegistry,
        sandbox: PathSandbox,
        config: ExecutorConfig | None = None,
    ) -> None:
        self.registry = registry
        self.sandbox = sandbox
        self.config = config or ExecutorConfig()

    async def run(self, command: str, token: str, cwd: str | None = None) -> str:
        """
        Run command if token authorizes it, returning its standard output.

        The token is consumed before anything else happens, even when the
        command turns out not to match the approved one.

        Raises:
            PermissionDenied: invalid, expired, reused or mismatched token
            PathViolation / NotFound: cwd outside the workspace or missing
            ExecutionFailure: non-zero exit, timeout or output overflow
        """
        approved = self.registry.validate_and_consume(token)
        if approved.command != command:
            logger.warning(f"Command does not match approval {approved.request_id}")
            raise PermissionDenied("Command does not match the approved command", reason="mismatch")

        workdir = await asyncio.to_thread(self.sandbox.resolve, cwd)
        logger.info(f"Executing approved command {approved.request_id} in {workdir}: {command!r}")
        result = await run_process(
            command,
            cwd=workdir,
            timeout=self.config.timeout,
            max_output_bytes=self.config.max_output_bytes,
        )

        if result.timed_out:
            raise ExecutionFailure(
                f"Command timed out after {self.config.timeout:g} seconds",
                output=result.stdout,
                stderr=result.stderr,
                exit_code=result.exit_code,
                timed_out=True,
            )
        if result.overflowed:
            raise ExecutionFailure(
                f"Command output exceeded {self.config.max_output_bytes} bytes",
                output=result.stdout,
                stderr=result.stderr,
                exit_code=result.exit_code,
            )
        if result.exit_code != 0:
            detail = result.stderr.strip() or result.stdout.strip()
            raise ExecutionFailure(
                f"Command failed with exit code {result.exit_code}: {detail[:500]}",
                output=result.stdout,
                stderr=result.stderr,
                exit_code=result.exit_code,
            )
        return result.stdout
