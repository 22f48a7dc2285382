"""SOA auto-fill API endpoint."""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import StreamingResponse

from compliance_engine.answers.events import AutoFillEvent, ErrorEvent
from compliance_engine.answers.orchestrator import AutoFillOrchestrator, create_orchestrator
from compliance_engine.config import settings
from compliance_engine.rag.exceptions import LLMProviderNotConfiguredError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/soa", tags=["soa"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"


@dataclass
class CallerIdentity:
    """Organization and user the request acts for."""

    organization_id: str
    user_id: str


def get_caller_identity(
    x_organization_id: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> CallerIdentity:
    """Read caller identity set by the upstream gateway."""
    if not x_organization_id or not x_user_id:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    return CallerIdentity(organization_id=x_organization_id, user_id=x_user_id)


async def get_orchestrator() -> AutoFillOrchestrator:
    try:
        return await create_orchestrator()
    except LLMProviderNotConfiguredError as e:
        logger.error(f"Auto-fill unavailable: {e}")
        raise HTTPException(status_code=503, detail="No LLM provider available")


def _encode(event: AutoFillEvent) -> str:
    return event.to_wire() + "\n"


async def _ndjson_stream(events: AsyncIterator[AutoFillEvent]) -> AsyncIterator[str]:
    """Serialize events one JSON object per line.

    Unexpected failures end the stream with an ``error`` event.
    """
    try:
        async for event in events:
            yield _encode(event)
    except Exception as e:
        logger.exception(f"Auto-fill stream failed: {e}")
        message = str(e) if settings.DEBUG else "Auto-fill failed"
        yield _encode(ErrorEvent(message=message))


@router.post("/documents/{document_id}/auto-fill")
async def auto_fill_document(
    document_id: str,
    identity: CallerIdentity = Depends(get_caller_identity),
    orchestrator: AutoFillOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Auto-fill an SOA document.

    Streams newline-delimited JSON events: ``progress``, one ``processing``
    per question, an ``answer`` per question as it resolves, and a final
    ``complete`` once answers are saved. A single ``error`` event is sent
    when the document cannot be found.
    """
    logger.info(
        f"Auto-fill requested for document {document_id} by user {identity.user_id}"
    )
    events = orchestrator.run(
        document_id=document_id,
        organization_id=identity.organization_id,
        user_id=identity.user_id,
    )
    return StreamingResponse(
        _ndjson_stream(events),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache"},
    )
