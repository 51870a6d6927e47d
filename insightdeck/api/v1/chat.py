"""
Chat proxy endpoint streaming the model reply as plain text.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from insightdeck.api.dependencies import get_llm_client
from insightdeck.api.schemas import ChatRequest
from insightdeck.application.ports import LLMServicePort
from insightdeck.infra.config.logging_config import get_logger

router = APIRouter(tags=["chat"])
log = get_logger("api.chat")


@router.post("/chat")
async def chat(
    request: ChatRequest, llm: LLMServicePort = Depends(get_llm_client)
) -> StreamingResponse:
    messages = [message.model_dump() for message in request.messages]
    log.info("chat.request", messages=len(messages))
    return StreamingResponse(
        llm.stream(messages),
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-store"},
    )
