"""
Orchestration Loop - bounded model/tool round trips for one user message.

The loop is:

1. Accumulate the turn's text
2. If the turn requests no tools: done
3. If the text budget or step budget is spent: stop with a notice
4. Dispatch each requested call in emission order, collect results
5. Send all results back in one batch, get the next turn, goto 1

If a step dispatched a dangerous tool (execute_command), the loop reads
the text of the following turn and stops unconditionally. A dangerous
operation is never chained with more autonomous tool use.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from vibecontrol.config import LoopConfig
from vibecontrol.errors import ProviderError
from vibecontrol.providers.base import ChatSession
from vibecontrol.tools import (
    DANGEROUS_TOOLS,
    EXECUTE_COMMAND,
    LIST_WORKSPACE_FILES,
    READ_FILE,
    ToolRegistry,
)
from vibecontrol.types import FunctionResult, LoopResult, ModelTurn

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE = "I'm ready to help you explore your codebase!"

TRUNCATION_NOTICE = (
    "Note: the response reached the length limit, so remaining tool calls were skipped."
)
STEP_LIMIT_NOTICE = (
    "Note: stopped after {steps} tool steps. Ask a follow-up question to continue."
)
PROVIDER_FAILURE_NOTICE = "Note: the model provider failed mid-conversation ({error})."


@dataclass
class LoopState:
    """Mutable bookkeeping for a single run."""
    step: int = 0
    texts: list[str] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)
    artifacts: list[dict[str, Any]] = field(default_factory=list)
    first_tool: str | None = None

    @property
    def char_count(self) -> int:
        return sum(len(text) for text in self.texts)

    def add_text(self, turn: ModelTurn) -> None:
        if turn.text:
            self.texts.append(turn.text)


class OrchestrationLoop:
    """
    Drives a chat session through tool round trips until a stop condition.

    The loop has no external cancellation. It ends only on its own stop
    conditions: no more calls, text budget, step budget, a dangerous
    operation, or a provider failure.
    """

    def __init__(self, tools: ToolRegistry, config: LoopConfig | None = None) -> None:
        self.tools = tools
        self.config = config or LoopConfig()

    async def run(self, chat: ChatSession, turn: ModelTurn) -> LoopResult:
        """
        Run the loop starting from the first turn of an already-live session.

        Args:
            chat: Session bound to the provider chosen by fallback
            turn: The session's answer to the user message
        """
        state = LoopState()
        stopped_reason = "completed"

        while True:
            state.add_text(turn)

            if not turn.has_tool_calls:
                break

            if state.char_count > self.config.max_chars:
                logger.warning(f"Response exceeded {self.config.max_chars} chars, stopping")
                state.notices.append(TRUNCATION_NOTICE)
                stopped_reason = "char_budget"
                break

            if state.step >= self.config.max_steps:
                logger.warning(f"Orchestration loop hit max_steps limit ({self.config.max_steps})")
                state.notices.append(STEP_LIMIT_NOTICE.format(steps=self.config.max_steps))
                stopped_reason = "max_steps"
                break

            state.step += 1
            logger.info(
                f"Orchestration step {state.step}/{self.config.max_steps}: "
                f"{len(turn.tool_calls)} tool call(s)"
            )
            results, dangerous = await self._dispatch(turn, state)

            try:
                turn = await chat.send_tool_results(results)
            except ProviderError as e:
                logger.error(f"Provider {chat.label} failed at step {state.step}: {e}")
                state.notices.append(PROVIDER_FAILURE_NOTICE.format(error=e))
                stopped_reason = "provider_error"
                break

            if dangerous:
                state.add_text(turn)
                stopped_reason = "approval_required"
                logger.info("Dangerous operation requested, ending tool use for this request")
                break

        return LoopResult(
            response=self._compose(state),
            artifacts=state.artifacts,
            steps_taken=state.step,
            stopped_reason=stopped_reason,
        )

    async def _dispatch(self, turn: ModelTurn, state: LoopState) -> tuple[list[FunctionResult], bool]:
        """Run every requested call sequentially, in the order the model emitted them."""
        results: list[FunctionResult] = []
        dangerous = False
        for call in turn.tool_calls:
            outcome = await self.tools.execute(call)
            results.append(FunctionResult(call_id=call.id, name=call.name, result=outcome.result))
            if outcome.artifact is not None:
                state.artifacts.append(outcome.artifact)
            if state.first_tool is None:
                state.first_tool = call.name
            if call.name in DANGEROUS_TOOLS:
                dangerous = True
        return results, dangerous

    def _compose(self, state: LoopState) -> str:
        """Join notices and text, bounded to the character budget."""
        text = "\n\n".join(t.strip() for t in state.texts if t.strip()) or self._fallback_text(state)
        response = "\n\n".join([*state.notices, text])
        return response[: self.config.max_chars]

    @staticmethod
    def _fallback_text(state: LoopState) -> str:
        if state.first_tool == LIST_WORKSPACE_FILES:
            return "Here's the project structure:"
        if state.first_tool == READ_FILE:
            return "Here's the file content:"
        if state.first_tool == EXECUTE_COMMAND:
            return "This command requires your approval:"
        if state.first_tool is not None:
            return "Here's what I found:"
        return DEFAULT_RESPONSE
