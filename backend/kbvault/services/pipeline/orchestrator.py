"""
PDF Processing Pipeline - turns an uploaded PDF into a knowledge entry.

Stages run strictly in order; each is mirrored as a workflow step. Fatal
stage errors mark the processing job failed with a categorized message and
propagate. Per-image, HTML upload and embedding failures are logged and the
run continues with degraded output.
"""
import asyncio
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from . import steps
from .knowledge import build_knowledge_entry, completed_job_patch, image_counts
from ..auth.base import AuthServiceInterface
from ..content_extraction import extract_text_from_html
from ..conversion.convertapi_client import ConvertAPIClient
from ..database.base import DatabaseInterface
from ..embedding_service import EmbeddingService
from ..error_categorizer import categorize_error
from ..image_relocation import (
    ImageRelocationEngine,
    discover_images,
    find_remaining_base64,
    rewrite_html,
)
from ..pdf_validation import PDFInfo, validate_pdf
from ..storage.base import ObjectStorageInterface
from ..workflow_observer import WorkflowStore
from ...api.exceptions import (
    HtmlPersistFailure,
    JobNotFoundError,
    PersistenceError,
    StorageError,
)
from ...core.config import (
    KNOWLEDGE_BASE_TABLE,
    MAX_TEXT_CHARS,
    PDF_DOCUMENTS_BUCKET,
    PROCESSING_JOBS_TABLE,
)
from ...core.logging_config import get_logger
from ...domain.entities import (
    AuthenticatedUser,
    ImageDiscovery,
    PDFSubmission,
    PipelineResult,
    ProcessingJob,
    ProcessingOptions,
    RelocationManifest,
    WorkflowJob,
)
from ...domain.value_objects import JobStatus, StepStatus

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _failure_metadata(error: Exception) -> Dict[str, object]:
    """Categorized error fields attached to the failed workflow step."""
    categorized = categorize_error(error)
    return {
        "error_category": categorized.category,
        "user_message": categorized.user_message,
        "troubleshooting": categorized.troubleshooting,
    }


@dataclass
class _Run:
    """State carried between the stages of one run."""
    submission: PDFSubmission
    options: ProcessingOptions
    started: float = field(default_factory=time.monotonic)
    user: Optional[AuthenticatedUser] = None
    job: Optional[ProcessingJob] = None
    pdf_path: Optional[str] = None
    pdf_url: Optional[str] = None
    pdf_info: Optional[PDFInfo] = None
    html: str = ""
    discovery: ImageDiscovery = field(default_factory=ImageDiscovery)
    manifest: RelocationManifest = field(default_factory=RelocationManifest)
    final_html: str = ""
    html_url: Optional[str] = None
    text: str = ""
    embedding: List[float] = field(default_factory=list)

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)


class PDFProcessingPipeline:
    """
    Orchestrates one PDF-to-knowledge-base run per workflow job.

    Submissions are retained by workflow job id so a job can be retried
    from scratch.
    """

    def __init__(
        self,
        auth_service: AuthServiceInterface,
        storage: ObjectStorageInterface,
        db: DatabaseInterface,
        converter: ConvertAPIClient,
        relocation_engine: ImageRelocationEngine,
        embedding_service: EmbeddingService,
        workflow_store: WorkflowStore,
        documents_bucket: str = PDF_DOCUMENTS_BUCKET,
        jobs_table: str = PROCESSING_JOBS_TABLE,
        knowledge_table: str = KNOWLEDGE_BASE_TABLE,
        max_text_chars: int = MAX_TEXT_CHARS,
    ):
        self.auth_service = auth_service
        self.storage = storage
        self.db = db
        self.converter = converter
        self.relocation_engine = relocation_engine
        self.embedding_service = embedding_service
        self.workflow = workflow_store
        self.documents_bucket = documents_bucket
        self.jobs_table = jobs_table
        self.knowledge_table = knowledge_table
        self.max_text_chars = max_text_chars

        self._submissions: Dict[str, tuple] = {}
        self._tasks: Set[asyncio.Task] = set()

    # Entry points

    def create_job(self, submission: PDFSubmission, options: Optional[ProcessingOptions] = None) -> str:
        """Register a workflow job for a submission without running it."""
        options = options or ProcessingOptions()
        job = self.workflow.create_job(
            name=f"PDF Processing: {submission.filename}",
            filename=submission.filename,
            steps=steps.PIPELINE_STEPS,
        )
        self._submissions[job.id] = (submission, options)
        logger.info(f"Created workflow job {job.id} for {submission.filename} ({submission.size} bytes)")
        return job.id

    async def start_processing(self, submission: PDFSubmission, options: Optional[ProcessingOptions] = None) -> str:
        """Create a job and run it in the background. Returns the workflow job id."""
        job_id = self.create_job(submission, options)
        self._schedule(job_id)
        return job_id

    async def process(self, submission: PDFSubmission, options: Optional[ProcessingOptions] = None) -> PipelineResult:
        """Create a job and run it to completion."""
        return await self.run(self.create_job(submission, options))

    async def retry_job(self, job_id: str) -> str:
        """Reset every step of a job and run the whole pipeline again."""
        if job_id not in self._submissions:
            raise JobNotFoundError(f"Job {job_id} not found")
        job = self.workflow.get_job(job_id)
        if job is not None and job.status == StepStatus.RUNNING:
            raise ValueError(f"Job {job_id} is still running")

        self.workflow.reset_job(job_id)
        logger.info(f"Retrying workflow job {job_id}")
        self._schedule(job_id)
        return job_id

    def get_job(self, job_id: str) -> WorkflowJob:
        job = self.workflow.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    def get_all_jobs(self) -> List[WorkflowJob]:
        return self.workflow.get_all_jobs()

    def _schedule(self, job_id: str):
        task = asyncio.create_task(self._run_in_background(job_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_in_background(self, job_id: str):
        try:
            await self.run(job_id)
        except Exception as e:
            # Already recorded on the workflow and processing job
            logger.error(f"Background processing of job {job_id} failed: {e}")

    async def wait_for_background_tasks(self):
        """Wait for scheduled runs to finish (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # Run

    async def run(self, job_id: str) -> PipelineResult:
        """Execute every stage for a created job."""
        if job_id not in self._submissions:
            raise JobNotFoundError(f"Job {job_id} not found")
        submission, options = self._submissions[job_id]
        run = _Run(submission=submission, options=options)

        logger.info(f"Starting PDF processing for job {job_id}: {submission.filename}")
        try:
            await self._authenticate(job_id, run)
            await self._upload(job_id, run)
            await self._validate(job_id, run)
            html_file = await self._convert(job_id, run)
            await self._extract_html(job_id, run, html_file)
            self._discover_images(job_id, run)
            await self._relocate_images(job_id, run)
            await self._finalize_html(job_id, run)
            self._extract_text(job_id, run)
            await self._generate_embedding(job_id, run)
            entry_id, entry = await self._store_knowledge_entry(job_id, run)
            await self._finalize_job(job_id, run, entry_id, entry)
        except Exception as e:
            await self._handle_failure(job_id, run, e)
            raise

        result = PipelineResult(
            processing_id=run.job.id,
            knowledge_entry_id=entry_id,
            processing_time_ms=run.job.processing_time_ms,
            confidence=entry.confidence_scores["overall"],
            text_length=len(run.text),
            html_length=len(run.final_html),
            title=entry.title,
            html_url=run.html_url,
            pages_processed=self._pages_processed(run),
            **image_counts(run.manifest),
        )
        logger.info(f"PDF processing completed for job {job_id} in {run.job.processing_time_ms}ms")
        return result

    # Stages

    def _track(self, job_id: str, step_id: str):
        return self.workflow.track(job_id, step_id, describe_error=_failure_metadata)

    async def _authenticate(self, job_id: str, run: _Run):
        with self._track(job_id, steps.AUTH) as step:
            run.user = await self.auth_service.get_user(run.submission.access_token)
            step.detail(f"Authenticated user {run.user.id}")

            run.job = ProcessingJob(
                user_id=run.user.id,
                original_filename=run.submission.filename,
                file_size=run.submission.size,
            )
            try:
                row = await self.db.insert(self.jobs_table, run.job.to_row())
            except Exception as e:
                raise PersistenceError(f"Failed to create processing record in database: {e}", stage=steps.AUTH) from e
            run.job.id = row["id"]
            self.workflow.set_processing_job_id(job_id, run.job.id)
            step.metadata(user_id=run.user.id, processing_job_id=run.job.id)

    async def _upload(self, job_id: str, run: _Run):
        with self._track(job_id, steps.UPLOAD) as step:
            path = f"{run.user.id}/{_now_ms()}-{run.submission.filename}"
            try:
                await self.storage.upload(self.documents_bucket, path, run.submission.content, "application/pdf")
                run.pdf_url = await self.storage.get_public_url(self.documents_bucket, path)
            except Exception as e:
                raise StorageError(f"Failed to upload PDF to storage: {e}", stage=steps.UPLOAD) from e
            run.pdf_path = path
            step.detail(f"Stored PDF at {self.documents_bucket}/{path}")
            step.metadata(storage_path=path, file_url=run.pdf_url)

            run.job.file_url = run.pdf_url
            await self._update_job(run, {"file_url": run.pdf_url})

    async def _validate(self, job_id: str, run: _Run):
        with self._track(job_id, steps.VALIDATION) as step:
            try:
                data = await self.storage.download(self.documents_bucket, run.pdf_path)
            except Exception as e:
                raise StorageError(f"Failed to read stored PDF from storage: {e}", stage=steps.VALIDATION) from e
            run.pdf_info = validate_pdf(data)
            step.detail(f"Valid PDF with {run.pdf_info.page_count} pages")
            step.metadata(page_count=run.pdf_info.page_count)

    async def _convert(self, job_id: str, run: _Run):
        with self._track(job_id, steps.CONVERSION) as step:
            html_file = await self.converter.convert(run.pdf_url, run.options.max_pages)
            step.detail(f"ConvertAPI returned {html_file.get('FileName')}")
            step.metadata(file_name=html_file.get("FileName"), max_pages=run.options.max_pages)
            return html_file

    async def _extract_html(self, job_id: str, run: _Run, html_file):
        with self._track(job_id, steps.HTML_EXTRACTION) as step:
            run.html = await self.converter.fetch_html(html_file)
            step.detail(f"Extracted {len(run.html)} characters of HTML")
            step.metadata(html_length=len(run.html))

    def _discover_images(self, job_id: str, run: _Run):
        with self._track(job_id, steps.IMAGE_DISCOVERY) as step:
            run.discovery = discover_images(run.html)
            step.detail(
                f"Found {len(run.discovery.http_images)} HTTP images and "
                f"{len(run.discovery.base64_images)} base64 images"
            )
            step.metadata(
                images_found=len(run.discovery.http_images),
                base64_images_found=len(run.discovery.base64_images),
            )

    async def _relocate_images(self, job_id: str, run: _Run):
        with self._track(job_id, steps.IMAGE_DOWNLOAD) as step:
            run.manifest = await self.relocation_engine.relocate(run.discovery, run.user.id)
            for reference, reason in run.manifest.skipped.items():
                step.log(f"Skipped {reference[:80]}: {reason}")
            step.detail(
                f"Relocated {len(run.manifest.relocated)} of {run.discovery.total} images"
            )
            step.metadata(**image_counts(run.manifest))

    async def _finalize_html(self, job_id: str, run: _Run):
        with self._track(job_id, steps.HTML_FINALIZATION) as step:
            run.final_html = rewrite_html(run.html, run.manifest.relocated)

            remaining = find_remaining_base64(run.final_html)
            if remaining:
                logger.warning(
                    f"Job {job_id}: {len(remaining)} base64 images remain after relocation, "
                    f"first: {[r[:60] for r in remaining[:3]]}"
                )
                step.log(f"{len(remaining)} base64 images were not replaced")

            try:
                run.html_url = await self._persist_html(run)
                step.detail(f"Saved final HTML to {run.html_url}")
            except HtmlPersistFailure as e:
                logger.warning(f"Job {job_id}: {e}")
                step.log(str(e))
                run.html_url = run.pdf_url
            step.metadata(html_url=run.html_url, remaining_base64=len(remaining))

    async def _persist_html(self, run: _Run) -> str:
        path = f"{run.user.id}/pdf-html/{run.submission.stem}-{_now_ms()}.html"
        try:
            await self.storage.upload(self.documents_bucket, path, run.final_html.encode("utf-8"), "text/html")
            return await self.storage.get_public_url(self.documents_bucket, path)
        except Exception as e:
            raise HtmlPersistFailure(f"Failed to save HTML to storage: {e}", stage=steps.HTML_FINALIZATION) from e

    def _extract_text(self, job_id: str, run: _Run):
        with self._track(job_id, steps.TEXT_EXTRACTION) as step:
            run.text = extract_text_from_html(run.final_html, self.max_text_chars)
            step.detail(f"Extracted {len(run.text)} characters of text")
            step.metadata(text_length=len(run.text))

    async def _generate_embedding(self, job_id: str, run: _Run):
        with self._track(job_id, steps.EMBEDDING) as step:
            run.embedding = await self.embedding_service.embed(run.text)
            if run.embedding:
                step.detail(f"Generated {len(run.embedding)}-dimension embedding")
            else:
                step.detail("Embedding unavailable, storing entry without a vector")
            step.metadata(embedding_generated=bool(run.embedding))

    async def _store_knowledge_entry(self, job_id: str, run: _Run):
        with self._track(job_id, steps.KNOWLEDGE_STORAGE) as step:
            entry = build_knowledge_entry(
                submission=run.submission,
                options=run.options,
                user_id=run.user.id,
                final_html=run.final_html,
                text=run.text,
                html_url=run.html_url,
                manifest=run.manifest,
                embedding=run.embedding,
                page_count=run.pdf_info.page_count if run.pdf_info else None,
            )
            try:
                row = await self.db.insert(self.knowledge_table, entry.to_row())
            except Exception as e:
                raise PersistenceError(
                    f"Failed to add document to knowledge base: {e}", stage=steps.KNOWLEDGE_STORAGE
                ) from e
            entry.id = row["id"]
            step.detail(f"Stored knowledge entry {entry.id}")
            step.metadata(knowledge_entry_id=entry.id, content_length=len(entry.content))
            return entry.id, entry

    async def _finalize_job(self, job_id: str, run: _Run, entry_id: str, entry):
        with self._track(job_id, steps.JOB_FINALIZATION) as step:
            run.job.mark_completed(run.elapsed_ms())
            patch = completed_job_patch(
                entry,
                knowledge_entry_id=entry_id,
                processing_time_ms=run.job.processing_time_ms,
                page_count=run.pdf_info.page_count if run.pdf_info else None,
            )
            await self._update_job(run, patch)
            step.detail(f"Processing job {run.job.id} completed in {run.job.processing_time_ms}ms")

    # Helpers

    async def _update_job(self, run: _Run, patch: dict):
        try:
            updated = await self.db.update(self.jobs_table, run.job.id, patch)
        except Exception as e:
            raise PersistenceError(f"Failed to update processing record in database: {e}") from e
        if updated is None:
            raise PersistenceError(f"Processing record {run.job.id} not found in database")

    async def _handle_failure(self, job_id: str, run: _Run, error: Exception):
        categorized = categorize_error(error)
        logger.error(
            f"PDF processing failed for job {job_id} at stage {categorized.stage or 'unknown'}: "
            f"{categorized.category}: {categorized.technical_details}"
        )

        if run.job is None or run.job.id is None:
            return
        run.job.mark_failed(categorized.job_error_message, run.elapsed_ms())
        try:
            await self.db.update(self.jobs_table, run.job.id, {
                "processing_status": JobStatus.FAILED.value,
                "processing_completed_at": run.job.completed_at.isoformat(),
                "processing_time_ms": run.job.processing_time_ms,
                "error_message": run.job.error_message,
            })
        except Exception as e:
            logger.error(f"Could not mark processing job {run.job.id} failed: {e}", exc_info=True)

    @staticmethod
    def _pages_processed(run: _Run) -> Optional[int]:
        if run.pdf_info is None:
            return None
        max_pages = run.options.max_pages
        return min(run.pdf_info.page_count, max_pages) if max_pages > 0 else run.pdf_info.page_count
