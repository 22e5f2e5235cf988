"""
PDF Processing Router - submits PDFs to the pipeline and reports progress.

Architecture:
- Router handles HTTP request/response only
- PDFProcessingPipeline runs the stages in the background
- WorkflowStore snapshots drive the job endpoints and the event stream

Example Usage:
    POST /pdf/process - Upload a PDF and start processing
    GET /pdf/jobs/{job_id} - Poll one job
    GET /pdf/jobs/{job_id}/events - Stream job snapshots (Server-Sent Events)
"""
import asyncio
import json
from typing import List, Optional

from fastapi import APIRouter, File, Form, Header, HTTPException, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from .dependencies import get_pdf_pipeline
from ..api.dto import ProcessJobResponseDTO, WorkflowJobDTO
from ..api.exceptions import JobNotFoundError, handle_business_exception
from ..api.mappers import WorkflowJobMapper
from ..core.config import DEFAULT_MAX_PAGES
from ..core.logging_config import get_logger
from ..domain.entities import PDFSubmission, ProcessingOptions

logger = get_logger(__name__)

router = APIRouter()

KEEPALIVE_SECONDS = 15.0


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def _sse(job) -> str:
    return f"event: job\ndata: {json.dumps(job.to_dict())}\n\n"


@router.post("/pdf/process", response_model=ProcessJobResponseDTO, status_code=status.HTTP_202_ACCEPTED)
async def process_pdf(
    file: UploadFile = File(...),
    max_pages: Optional[int] = Form(None),
    language: str = Form("en"),
    authorization: Optional[str] = Header(None),
):
    """
    Accept a PDF and run the processing pipeline in the background.

    Authentication happens inside the pipeline's first stage, so a missing
    or unknown token shows up as a failed `auth` step on the returned job.
    """
    content = await file.read()
    submission = PDFSubmission(
        filename=file.filename or "document.pdf",
        content=content,
        content_type=file.content_type or "application/pdf",
        access_token=_bearer_token(authorization),
    )
    options = ProcessingOptions(
        language=language,
        max_pages=DEFAULT_MAX_PAGES if max_pages is None else max(0, max_pages),
    )

    job_id = await get_pdf_pipeline().start_processing(submission, options)
    logger.info(f"Accepted {submission.filename} ({submission.size} bytes) as job {job_id}")
    return ProcessJobResponseDTO(job_id=job_id)


@router.get("/pdf/jobs", response_model=List[WorkflowJobDTO])
async def list_jobs():
    """All workflow jobs, most recently started first."""
    return WorkflowJobMapper.to_dto_list(get_pdf_pipeline().get_all_jobs())


@router.get("/pdf/jobs/{job_id}", response_model=WorkflowJobDTO)
async def get_job(job_id: str):
    try:
        return WorkflowJobMapper.to_dto(get_pdf_pipeline().get_job(job_id))
    except JobNotFoundError as e:
        raise handle_business_exception(e)


@router.post("/pdf/jobs/{job_id}/retry", response_model=ProcessJobResponseDTO, status_code=status.HTTP_202_ACCEPTED)
async def retry_job(job_id: str):
    """Reset every step and re-run the whole pipeline for a finished job."""
    try:
        await get_pdf_pipeline().retry_job(job_id)
    except JobNotFoundError as e:
        raise handle_business_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return ProcessJobResponseDTO(job_id=job_id)


@router.get("/pdf/jobs/{job_id}/events")
async def stream_job_events(job_id: str, request: Request):
    """
    Server-Sent Events stream of full job snapshots.

    Sends the current snapshot first, then one event per change, and ends
    once the job is completed or failed.
    """
    pipeline = get_pdf_pipeline()
    try:
        pipeline.get_job(job_id)
    except JobNotFoundError as e:
        raise handle_business_exception(e)

    store = pipeline.workflow
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_update(snapshot):
        if snapshot.id == job_id:
            loop.call_soon_threadsafe(queue.put_nowait, snapshot)

    async def event_stream():
        unsubscribe = store.subscribe(on_update)
        try:
            snapshot = store.get_job(job_id)
            yield _sse(snapshot)
            while not snapshot.status.is_terminal:
                if await request.is_disconnected():
                    logger.debug(f"Event stream client for job {job_id} disconnected")
                    break
                try:
                    snapshot = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield _sse(snapshot)
        finally:
            unsubscribe()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
