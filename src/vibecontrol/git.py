"""Read-only git inspection of the workspace."""

import asyncio
import logging

from vibecontrol.config import ExecutorConfig
from vibecontrol.errors import ExecutionFailure
from vibecontrol.executor import run_process
from vibecontrol.sandbox import PathSandbox

logger = logging.getLogger(__name__)


class GitInspector:
    """Runs `git status` and `git diff` in a sandboxed directory."""

    def __init__(self, sandbox: PathSandbox, config: ExecutorConfig | None = None) -> None:
        self.sandbox = sandbox
        self.config = config or ExecutorConfig()

    async def status(self, cwd: str | None = None) -> str:
        output = await self._git(["git", "status", "--porcelain"], cwd)
        return output or "Clean working directory"

    async def diff(self, cwd: str | None = None) -> str:
        output = await self._git(["git", "diff"], cwd)
        return output or "No uncommitted changes"

    async def _git(self, argv: list[str], cwd: str | None) -> str:
        workdir = await asyncio.to_thread(self.sandbox.resolve, cwd)
        try:
            result = await run_process(
                argv,
                cwd=workdir,
                timeout=self.config.timeout,
                max_output_bytes=self.config.max_output_bytes,
            )
        except FileNotFoundError as e:
            raise ExecutionFailure("git is not installed") from e

        if not result.ok:
            detail = result.stderr.strip() or f"exit code {result.exit_code}"
            raise ExecutionFailure(
                f"{' '.join(argv)} failed: {detail}",
                output=result.stdout,
                stderr=result.stderr,
                exit_code=result.exit_code,
                timed_out=result.timed_out,
            )
        return result.stdout
