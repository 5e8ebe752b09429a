"""
FastAPI router for contest entry endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.datastructures import UploadFile

from . import schemas
from .service import SubmissionCoordinator

router = APIRouter()

HEALTH_MESSAGE = "Contest entry backend is running"


def get_coordinator(request: Request) -> SubmissionCoordinator:
    return request.app.state.coordinator


@router.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return HEALTH_MESSAGE


@router.post(
    "/submit-entry",
    response_model=schemas.SubmitEntryResponse,
    responses={
        400: {"model": schemas.ErrorResponse},
        413: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
    },
)
async def submit_entry(
    request: Request,
    coordinator: SubmissionCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    """
    Accept one entry as multipart form data.

    Text fields are read by name; files come in as repeated
    `visual_files` parts and keep the order the client sent them in;
    parts without a filename (an unused file input) are ignored.
    Field checks happen in the coordinator so that missing fields produce
    the `{message}` body rather than FastAPI's 422 validation payload.
    """
    form = await request.form()
    try:
        fields = {k: v for k, v in form.multi_items() if isinstance(v, str)}
        uploads = [
            part
            for part in form.getlist(schemas.ATTACHMENT_FIELD)
            # An empty file input still posts a part, with no filename.
            if isinstance(part, UploadFile) and part.filename
        ]
        result = await coordinator.handle(fields, uploads)
    finally:
        await form.close()

    return JSONResponse(status_code=result.status_code, content=result.payload)
