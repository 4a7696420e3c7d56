"""Bulk metadata for list views."""

from fastapi import APIRouter, Depends, Request

from server.dependencies.body import read_body
from server.models.requests import FlagsRequest
from server.models.responses import FlagsResponse, OwnersResponse

router = APIRouter(prefix="/meta", tags=["meta"])


@router.get("/owners")
async def owners(request: Request) -> dict:
    return OwnersResponse(owners=request.app.state.acl_service.owners()).model_dump()


@router.post("/docs/flags")
async def docs_flags(request: Request, body: dict = Depends(read_body)) -> dict:
    """Return owner, protection and lock state for many documents in one round trip."""
    doc_ids = [doc_id for doc_id in FlagsRequest.model_validate(body).docIds if doc_id]
    flags = request.app.state.acl_service.batch_flags(doc_ids)
    return FlagsResponse(flags=flags).model_dump()
