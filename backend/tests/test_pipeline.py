import asyncio
import json

import pytest

from conftest import (
    FakeEmbeddings,
    PUBLIC_BASE,
    REMOTE_IMAGE_URL,
    TOKEN,
    make_pdf,
)
from kbvault.api.exceptions import AuthError, ConversionError, JobNotFoundError, ValidationError
from kbvault.core.config import KNOWLEDGE_BASE_TABLE, PROCESSING_JOBS_TABLE
from kbvault.domain.entities import PDFSubmission, ProcessingOptions
from kbvault.domain.value_objects import StepStatus
from kbvault.services.pipeline.steps import PIPELINE_STEPS
from kbvault.services.storage import LocalObjectStorage

STEP_IDS = [step_id for step_id, _, _ in PIPELINE_STEPS]


def _submission(content=None, token=TOKEN, filename="report.pdf"):
    return PDFSubmission(
        filename=filename,
        content=make_pdf(pages=2) if content is None else content,
        access_token=token,
    )


async def _only_row(db, table):
    rows = await db.select(table)
    assert len(rows) == 1
    return rows[0]


async def test_full_pipeline_relocates_images_and_stores_entry(build_pipeline, db, storage, workflow_store):
    pipeline = build_pipeline()

    result = await pipeline.process(_submission())

    assert result.images_found == 1
    assert result.images_processed == 1
    assert result.base64_images_found == 1
    assert result.base64_images_processed == 1
    assert result.pages_processed == 2
    assert result.confidence == 0.87
    assert result.title == "report - HTML Document"
    assert result.html_url.startswith(f"{PUBLIC_BASE}/files/pdf-documents/user-1/pdf-html/report-")

    entry = await _only_row(db, KNOWLEDGE_BASE_TABLE)
    assert entry["id"] == result.knowledge_entry_id
    assert REMOTE_IMAGE_URL not in entry["content"]
    assert "data:image/png;base64" not in entry["content"]
    assert f"{PUBLIC_BASE}/files/material-images/user-1/pdf-images/pdf-image-1-" in entry["content"]
    assert entry["source_url"] == result.html_url
    assert entry["openai_embedding"] == [0.25] * 8
    assert entry["created_by"] == "user-1"
    assert entry["semantic_tags"] == ["pdf", "html", "convertapi", "uploaded-content"]

    metadata = entry["metadata"]
    assert metadata["images_found"] == 1
    assert metadata["images_processed"] == 1
    assert metadata["base64_images_found"] == 1
    assert metadata["base64_images_processed"] == 1
    assert metadata["embedding_generated"] is True
    assert metadata["content_truncated"] is False
    assert metadata["file_info"]["page_count"] == 2
    assert len(metadata["processed_images"]) == 2
    assert metadata["skipped_images"] == []
    assert "console.log" not in metadata["text_preview"]
    assert metadata["text_preview"].startswith("Quarterly Material Report")
    assert entry["confidence_scores"]["image_processing"] == 0.8

    job = await _only_row(db, PROCESSING_JOBS_TABLE)
    assert job["id"] == result.processing_id
    assert job["processing_status"] == "completed"
    assert job["knowledge_entry_id"] == result.knowledge_entry_id
    assert job["document_title"] == "report - HTML Document"
    assert job["total_pages"] == 2
    assert job["file_url"].startswith(f"{PUBLIC_BASE}/files/pdf-documents/user-1/")

    workflow = workflow_store.get_all_jobs()[0]
    assert workflow.status == StepStatus.COMPLETED
    assert [step.id for step in workflow.steps] == STEP_IDS
    assert all(step.status == StepStatus.COMPLETED for step in workflow.steps)
    assert workflow.processing_job_id == result.processing_id

    # The saved HTML artifact is the rewritten document
    html_path = result.html_url.split("/files/pdf-documents/", 1)[1]
    saved_html = (await storage.download("pdf-documents", html_path)).decode("utf-8")
    assert saved_html == entry["content"]


async def test_result_dict_shape(build_pipeline):
    result = await build_pipeline().process(_submission())
    payload = result.to_dict()
    assert set(payload) == {
        "processing_id", "knowledge_entry_id", "processing_time_ms", "confidence",
        "extracted_content", "conversion_info",
    }
    assert payload["conversion_info"]["images_processed"] == 1


async def test_page_cap_is_sent_to_converter(build_pipeline):
    calls = []
    pipeline = build_pipeline(convert_calls=calls)

    result = await pipeline.process(_submission(), ProcessingOptions(max_pages=1))

    body = json.loads(calls[0].content)
    assert {"Name": "PageRange", "Value": "1-1"} in body["Parameters"]
    assert result.pages_processed == 1


async def test_missing_token_fails_auth_without_job_row(build_pipeline, db, workflow_store):
    pipeline = build_pipeline()

    with pytest.raises(AuthError):
        await pipeline.process(_submission(token=None))

    assert await db.select(PROCESSING_JOBS_TABLE) == []
    workflow = workflow_store.get_all_jobs()[0]
    assert workflow.status == StepStatus.FAILED
    assert workflow.get_step("auth").status == StepStatus.FAILED
    assert workflow.get_step("auth").metadata["error_category"] == "AUTH_ERROR"
    assert workflow.get_step("upload").status == StepStatus.PENDING


async def test_invalid_pdf_fails_validation(build_pipeline, db, workflow_store):
    pipeline = build_pipeline()

    with pytest.raises(ValidationError):
        await pipeline.process(_submission(content=b"not a pdf at all"))

    job = await _only_row(db, PROCESSING_JOBS_TABLE)
    assert job["processing_status"] == "failed"
    assert job["error_message"].startswith("VALIDATION_ERROR: ")
    assert "| Technical: Invalid PDF" in job["error_message"]
    assert await db.select(KNOWLEDGE_BASE_TABLE) == []

    workflow = workflow_store.get_all_jobs()[0]
    assert workflow.get_step("validation").status == StepStatus.FAILED
    assert workflow.get_step("convertapi-conversion").status == StepStatus.PENDING


async def test_first_failed_snapshot_already_has_categorized_error(build_pipeline, workflow_store):
    pipeline = build_pipeline()
    failed = []

    def on_update(snapshot):
        if snapshot.status == StepStatus.FAILED:
            failed.append(snapshot)

    workflow_store.subscribe(on_update)

    with pytest.raises(ValidationError):
        await pipeline.process(_submission(content=b"not a pdf at all"))

    step = failed[0].get_step("validation")
    assert step.metadata["error_category"] == "VALIDATION_ERROR"
    assert step.metadata["user_message"]
    assert step.metadata["troubleshooting"]


async def test_missing_convertapi_key_is_categorized(build_pipeline, db, workflow_store):
    pipeline = build_pipeline(convert_key=None)

    with pytest.raises(ConversionError):
        await pipeline.process(_submission())

    job = await _only_row(db, PROCESSING_JOBS_TABLE)
    assert job["processing_status"] == "failed"
    assert job["error_message"].startswith("API_KEY_MISSING: ")

    step = workflow_store.get_all_jobs()[0].get_step("convertapi-conversion")
    assert step.status == StepStatus.FAILED
    assert step.metadata["error_category"] == "API_KEY_MISSING"
    assert step.metadata["troubleshooting"]


async def test_failed_images_are_skipped_not_fatal(build_pipeline, db):
    pipeline = build_pipeline(images={})

    result = await pipeline.process(_submission())

    assert result.images_found == 1
    assert result.images_processed == 0
    assert result.base64_images_processed == 1

    entry = await _only_row(db, KNOWLEDGE_BASE_TABLE)
    assert REMOTE_IMAGE_URL in entry["content"]
    assert entry["metadata"]["skipped_images"] == [{"reference": REMOTE_IMAGE_URL, "reason": "HTTP 404"}]


async def test_no_images_means_zero_image_confidence(build_pipeline, db):
    pipeline = build_pipeline(html="<html><body><p>Text only document</p></body></html>")

    result = await pipeline.process(_submission())

    assert result.images_found == 0
    entry = await _only_row(db, KNOWLEDGE_BASE_TABLE)
    assert entry["confidence_scores"]["image_processing"] == 0.0
    assert entry["confidence_scores"]["overall"] == 0.87


async def test_embedding_failure_is_not_fatal(build_pipeline, db):
    pipeline = build_pipeline(embeddings=FakeEmbeddings(fail=True))

    await pipeline.process(_submission())

    entry = await _only_row(db, KNOWLEDGE_BASE_TABLE)
    assert entry["openai_embedding"] is None
    assert entry["metadata"]["embedding_generated"] is False
    job = await _only_row(db, PROCESSING_JOBS_TABLE)
    assert job["processing_status"] == "completed"


async def test_empty_embedding_response_is_not_fatal(build_pipeline, db):
    pipeline = build_pipeline(embeddings=FakeEmbeddings(data=[]))

    await pipeline.process(_submission())

    entry = await _only_row(db, KNOWLEDGE_BASE_TABLE)
    assert entry["metadata"]["embedding_generated"] is False
    job = await _only_row(db, PROCESSING_JOBS_TABLE)
    assert job["processing_status"] == "completed"


class HtmlRejectingStorage(LocalObjectStorage):
    async def upload(self, bucket, path, data, content_type=None):
        if content_type == "text/html":
            raise OSError("bucket is read-only")
        return await super().upload(bucket, path, data, content_type)


async def test_html_upload_failure_falls_back_to_pdf_url(build_pipeline, db, tmp_path):
    storage = HtmlRejectingStorage(base_dir=tmp_path / "ro", public_base_url=PUBLIC_BASE)
    pipeline = build_pipeline(storage_override=storage)

    result = await pipeline.process(_submission())

    job = await _only_row(db, PROCESSING_JOBS_TABLE)
    assert result.html_url == job["file_url"]
    entry = await _only_row(db, KNOWLEDGE_BASE_TABLE)
    assert entry["source_url"] == job["file_url"]


async def test_oversized_content_is_truncated_with_marker(build_pipeline, db):
    html = "<html><body><p>" + ("x" * (1024 * 1024 + 100)) + "</p></body></html>"
    pipeline = build_pipeline(html=html)

    await pipeline.process(_submission())

    entry = await _only_row(db, KNOWLEDGE_BASE_TABLE)
    assert entry["metadata"]["content_truncated"] is True
    assert entry["content"].endswith("<!-- Content truncated due to size -->")


async def test_start_processing_runs_in_background(build_pipeline, workflow_store):
    pipeline = build_pipeline()

    job_id = await pipeline.start_processing(_submission())
    await pipeline.wait_for_background_tasks()

    assert pipeline.get_job(job_id).status == StepStatus.COMPLETED


async def test_retry_reruns_whole_pipeline_with_new_job_row(build_pipeline, db):
    pipeline = build_pipeline(convert_key=None)
    job_id = await pipeline.start_processing(_submission())
    await pipeline.wait_for_background_tasks()
    assert pipeline.get_job(job_id).status == StepStatus.FAILED

    pipeline.converter.api_key = "convert-key"
    await asyncio.sleep(0.01)
    await pipeline.retry_job(job_id)
    await pipeline.wait_for_background_tasks()

    job = pipeline.get_job(job_id)
    assert job.status == StepStatus.COMPLETED
    statuses = sorted(row["processing_status"] for row in await db.select(PROCESSING_JOBS_TABLE))
    assert statuses == ["completed", "failed"]
    assert job.processing_job_id is not None


async def test_unknown_jobs(build_pipeline):
    pipeline = build_pipeline()
    with pytest.raises(JobNotFoundError):
        pipeline.get_job("missing")
    with pytest.raises(JobNotFoundError):
        await pipeline.retry_job("missing")


async def test_progress_snapshots_follow_stage_order(build_pipeline, workflow_store):
    started = []

    def on_update(snapshot):
        for step in snapshot.steps:
            if step.status == StepStatus.RUNNING and step.id not in started:
                started.append(step.id)

    workflow_store.subscribe(on_update)
    await build_pipeline().process(_submission())

    assert started == STEP_IDS
