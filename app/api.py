"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from app.schemas import ReportResponse
from services.processor import ReportService, build_default_service

router = APIRouter()


def get_service() -> ReportService:
    return build_default_service()


@router.post(
    "/reports",
    response_model=ReportResponse,
    summary="Aggregate an uploaded NAME,DATE,VALUE record file.",
)
def create_report(
    file: UploadFile = File(..., description="Text file with one NAME,DATE,VALUE record per line."),
    service: ReportService = Depends(get_service),
) -> ReportResponse:
    source = file.filename or "upload.txt"
    file.file.seek(0)
    if not file.file.read(1):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty.",
        )
    file.file.seek(0)

    try:
        processed = service.process_stream(file.file, source=source)
    except UnicodeDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is not valid UTF-8 text.",
        ) from exc
    return ReportResponse.from_processed(processed)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
