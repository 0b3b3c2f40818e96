"""
CV Agent: Bounded Tool-Calling Orchestration

The agent answers questions about the CV owner's career by letting the model
decide when to call the `searchCV` tool. A single turn is an explicit,
bounded state machine:

    received -> (tool-call -> tool-result)* -> streaming-response -> done

- Up to `max_tool_steps` tool-call rounds are allowed with tool choice "auto".
- Once that budget is spent the model is called once more with tool choice
  "none", so it must produce a final answer.
- The whole turn runs in its own task under a wall-clock timer. When the
  timer fires the task is cancelled and the stream ends with whatever text
  was already produced. The timer is cleared on normal completion.

Tool failure policy
-------------------
A failing tool call (invalid arguments, embedding or vector-store failure)
is reported back to the model as a tool result ``{"error": ...}`` and the
turn continues. Search results are never fabricated. Provider errors are not
retried and surface to the caller as a stream error.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from .config import AgentConfig, DEFAULT_AGENT_CONFIG
from ..adapters.message_adapter import ModelMessage
from ..core.errors import InvalidRequestError, RetrievalError
from ..embeddings.models import EmbeddingService, VectorSearchBackend
from ..llm.client import LLMClient, StreamEnd, TextDelta, ToolCall
from ..prompts import CV_SYSTEM_PROMPT
from ..tools.base import ToolContext, dispatch_tool_call
from ..tools.definitions import TOOL_DEFINITIONS

logger = logging.getLogger("cv.agent")


# ---------------------------------------------------------------------
# Turn State
# ---------------------------------------------------------------------

class TurnPhase(str, enum.Enum):
    RECEIVED = "received"
    TOOL_CALL = "tool-call"
    TOOL_RESULT = "tool-result"
    STREAMING = "streaming-response"
    DONE = "done"


@dataclass
class TurnState:
    """Progress of one request through the tool loop."""
    phase: TurnPhase = TurnPhase.RECEIVED
    model_calls: int = 0
    tool_steps: int = 0
    used_tools: List[Dict[str, Any]] = field(default_factory=list)


# ---------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------

def _convert_to_llm_format(messages: Sequence[ModelMessage]) -> List[Dict[str, Any]]:
    """Convert ModelMessage objects into plain dicts for LLM input."""
    return [{"role": m.role, "content": m.content} for m in messages]


def _append_tool_result(
    loop_messages: List[Dict[str, Any]],
    call_id: str,
    tool_output: Any,
) -> None:
    """Append a tool output message in the format expected by the LLM."""
    loop_messages.append({
        "role": "tool",
        "tool_call_id": call_id,
        "content": json.dumps(tool_output, default=str),
    })


# ---------------------------------------------------------------------
# Timeout-Controlled Stream
# ---------------------------------------------------------------------

_END = object()


class _Failure:
    def __init__(self, exc: BaseException) -> None:
        self.exc = exc


class AgentStream:
    """
    Async iterator of text chunks for one request.

    The producing task and its cancellation timer start at construction,
    so this must be created inside a running event loop. Each instance owns
    its own task and timer; cancelling one never affects another.
    """

    def __init__(
        self,
        source: AsyncIterator[str],
        timeout_s: float,
        turn: Optional[TurnState] = None,
    ) -> None:
        loop = asyncio.get_running_loop()

        self.turn = turn or TurnState()
        self.timed_out = False
        self._queue: asyncio.Queue = asyncio.Queue()
        self._finished = False

        self._task = loop.create_task(self._pump(source))
        self._timer = loop.call_later(timeout_s, self._on_timeout)
        self._task.add_done_callback(self._on_done)

    async def _pump(self, source: AsyncIterator[str]) -> None:
        async for chunk in source:
            self._queue.put_nowait(chunk)

    def _on_timeout(self) -> None:
        if self._task.done():
            return
        self.timed_out = True
        logger.warning(
            "Request timed out after %d model call(s); cancelling stream",
            self.turn.model_calls,
        )
        self._task.cancel()

    def _on_done(self, task: asyncio.Task) -> None:
        self._timer.cancel()
        if not task.cancelled() and task.exception() is not None:
            self._queue.put_nowait(_Failure(task.exception()))
        self._queue.put_nowait(_END)

    def __aiter__(self) -> "AgentStream":
        return self

    async def __anext__(self) -> str:
        if self._finished:
            raise StopAsyncIteration

        item = await self._queue.get()
        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._finished = True
            raise item.exc
        return item

    async def aclose(self) -> None:
        """Stop the turn early, e.g. when the client disconnects."""
        self._finished = True
        self._timer.cancel()
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def collect(self) -> str:
        """Drain the stream and return the concatenated text."""
        return "".join([chunk async for chunk in self])


# ---------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------

class CVAgent:
    """
    Streams answers grounded in CV content.

    Holds only immutable configuration and shared, stateless clients, so a
    single instance may serve concurrent requests.
    """

    def __init__(
        self,
        llm: LLMClient,
        embedder: EmbeddingService,
        vector_store: VectorSearchBackend,
        config: AgentConfig = DEFAULT_AGENT_CONFIG,
        system_prompt: str = CV_SYSTEM_PROMPT,
    ) -> None:
        self.config = config
        self.system_prompt = system_prompt
        self._llm = llm
        self._tool_ctx = ToolContext(
            embedder=embedder,
            vector_store=vector_store,
            config=config,
        )

    def stream(self, messages: Sequence[ModelMessage]) -> AgentStream:
        """
        Start answering the conversation and return its text stream.

        Raises
        ------
        InvalidRequestError
            If there are no messages to answer.
        """
        if not messages:
            raise InvalidRequestError("No valid messages in request")

        turn = TurnState()
        return AgentStream(
            self._run_turn(list(messages), turn),
            timeout_s=self.config.request_timeout_s,
            turn=turn,
        )

    # -----------------------------------------------------------------
    # Tool Loop
    # -----------------------------------------------------------------

    async def _run_turn(
        self,
        messages: List[ModelMessage],
        turn: TurnState,
    ) -> AsyncIterator[str]:
        loop_messages = _convert_to_llm_format(messages)

        while True:
            tools_allowed = turn.tool_steps < self.config.max_tool_steps
            turn.phase = TurnPhase.STREAMING
            turn.model_calls += 1

            step_text: List[str] = []
            end = StreamEnd()

            async for event in self._llm.stream_chat(
                model=self.config.model_id,
                system_prompt=self.system_prompt,
                messages=loop_messages,
                tools=TOOL_DEFINITIONS,
                tool_choice="auto" if tools_allowed else "none",
            ):
                if isinstance(event, TextDelta):
                    step_text.append(event.text)
                    yield event.text
                else:
                    end = event

            if not end.tool_calls or not tools_allowed:
                # No tools called (or budget spent) -> this is the final answer
                turn.phase = TurnPhase.DONE
                return

            turn.phase = TurnPhase.TOOL_CALL
            loop_messages.append({
                "role": "assistant",
                "content": "".join(step_text) or None,
                "tool_calls": [tc.to_message_dict() for tc in end.tool_calls],
            })

            for tc in end.tool_calls:
                output = await self._execute_tool(tc)
                turn.used_tools.append({"name": tc.name, "args": tc.arguments, "result": output})
                _append_tool_result(loop_messages, tc.id, output)

            turn.phase = TurnPhase.TOOL_RESULT
            turn.tool_steps += 1

    async def _execute_tool(self, tc: ToolCall) -> Dict[str, Any]:
        try:
            parsed_args = json.loads(tc.arguments or "{}")
        except ValueError:
            # Return error to model so it can retry
            return {"error": "Invalid JSON arguments for tool call."}

        try:
            return await dispatch_tool_call(tc.name, parsed_args, self._tool_ctx)
        except (InvalidRequestError, RetrievalError) as exc:
            logger.warning("Tool %s failed: %s", tc.name, exc)
            return {"error": f"Tool execution failed: {exc}"}
