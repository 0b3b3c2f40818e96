"""
Chat Routes: Streaming CV Question Answering

This module implements the conversational endpoint used by the terminal
widget on the CV site.

Major Responsibilities
----------------------
1. Reject the request with a configuration error if DATABASE_URL or
   AI_GATEWAY_API_KEY is missing (before any provider call).
2. Validate the body and adapt UI messages to model messages.
3. Reject the request (400) if nothing survives adaptation.
4. Start the agent and stream its text output as plain incremental text.

Errors raised after streaming started cannot change the HTTP status, so the
body is terminated with an error marker instead.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, AsyncIterator, Dict, List

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse

from .dependencies import get_agent
from .models import ChatRequest
from ..adapters.message_adapter import ModelMessage, create_message_adapter
from ..agent.cv_agent import AgentStream, CVAgent
from ..core.errors import CVAgentError, InvalidRequestError, ProviderError

logger = logging.getLogger("cv.chat")

router = APIRouter(prefix="/chat", tags=["chat"])

STREAM_ERROR_MARKER = "\n\n[error] "

_adapter = create_message_adapter()


# ---------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------

def _with_parts(msg: Any) -> Any:
    """
    Accept the `{role, content: "..."}` shorthand by wrapping the string
    body into a single text part. Everything else passes through untouched.
    """
    if (
        isinstance(msg, dict)
        and "parts" not in msg
        and isinstance(msg.get("content"), str)
    ):
        wrapped: Dict[str, Any] = dict(msg)
        wrapped["parts"] = [{"type": "text", "text": wrapped.pop("content")}]
        return wrapped
    return msg


async def _text_stream(
    agent: CVAgent,
    messages: List[ModelMessage],
) -> AsyncIterator[str]:
    # Started on first iteration, so nothing runs for a client that never reads
    stream: AgentStream = agent.stream(messages)
    try:
        async for chunk in stream:
            yield chunk
    except ProviderError as exc:
        logger.error("Chat stream failed: %s", exc)
        yield STREAM_ERROR_MARKER + "Upstream model provider failed."
    except CVAgentError as exc:
        logger.error("Chat stream failed: %s: %s", type(exc).__name__, exc)
        yield STREAM_ERROR_MARKER + "Request failed."
    except Exception:
        logger.exception("Unhandled error while streaming chat response")
        yield STREAM_ERROR_MARKER + "Internal server error."
    finally:
        await stream.aclose()
        if stream.timed_out:
            logger.info(
                "Chat stream ended by timeout after %d model call(s)",
                stream.turn.model_calls,
            )


# ---------------------------------------------------------------------
# Chat Route
# ---------------------------------------------------------------------

@router.post(
    "/",
    summary="Ask the CV agent a question (streamed plain text)",
    status_code=status.HTTP_200_OK,
    response_class=StreamingResponse,
)
async def chat(
    req: ChatRequest,
    agent: Annotated[CVAgent, Depends(get_agent)],
) -> StreamingResponse:
    model_messages = _adapter.to_model_messages([_with_parts(m) for m in req.messages])

    if not model_messages:
        raise InvalidRequestError("No valid messages in request")

    logger.info("Chat request with %d message(s)", len(model_messages))

    return StreamingResponse(
        _text_stream(agent, model_messages),
        media_type="text/plain; charset=utf-8",
    )
