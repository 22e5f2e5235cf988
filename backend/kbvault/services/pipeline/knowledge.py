"""
Builds the knowledge entry and the completed-job record from pipeline output.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..content_extraction import cap_content, derive_keywords
from ...core.config import (
    CONFIDENCE_CONVERSION,
    CONFIDENCE_IMAGE_PROCESSING,
    CONFIDENCE_OVERALL,
    CONFIDENCE_TEXT_EXTRACTION,
    MAX_CONTENT_CHARS,
)
from ...domain.entities import KnowledgeEntry, PDFSubmission, ProcessingOptions, RelocationManifest
from ...domain.value_objects import JobStatus, UserId

SOURCE_TYPE = "convertapi_pdf_upload"
PROCESSING_METHOD = "convertapi_html_conversion_optimized"


def confidence_scores(manifest: RelocationManifest) -> Dict[str, float]:
    return {
        "conversion": CONFIDENCE_CONVERSION,
        "text_extraction": CONFIDENCE_TEXT_EXTRACTION,
        "image_processing": CONFIDENCE_IMAGE_PROCESSING if manifest.relocated else 0.0,
        "overall": CONFIDENCE_OVERALL,
    }


def image_counts(manifest: RelocationManifest) -> Dict[str, int]:
    return {
        "images_found": manifest.http_found,
        "images_processed": len(manifest.http_processed),
        "base64_images_found": manifest.base64_found,
        "base64_images_processed": len(manifest.base64_processed),
    }


def build_knowledge_entry(
    submission: PDFSubmission,
    options: ProcessingOptions,
    user_id: UserId,
    final_html: str,
    text: str,
    html_url: str,
    manifest: RelocationManifest,
    embedding: List[float],
    page_count: Optional[int] = None,
    max_content_chars: int = MAX_CONTENT_CHARS,
) -> KnowledgeEntry:
    content, truncated = cap_content(final_html, max_content_chars)
    counts = image_counts(manifest)

    metadata: Dict[str, Any] = {
        "source_type": SOURCE_TYPE,
        "processing_method": PROCESSING_METHOD,
        "file_info": {
            "original_filename": submission.filename,
            "file_size": submission.size,
            "page_count": page_count,
            "processing_date": datetime.now().isoformat(),
        },
        "storage_info": {"html_storage_url": html_url, **counts},
        "processed_images": [
            {
                "original_url": image.original_reference,
                "supabase_url": image.public_url,
                "filename": image.filename,
                "size": image.size,
                "kind": image.kind.value,
            }
            for image in manifest.relocated
        ],
        "skipped_images": [
            {"reference": reference, "reason": reason}
            for reference, reason in manifest.skipped.items()
        ],
        "embedding_generated": bool(embedding),
        "content_truncated": truncated,
        "text_preview": text[:500],
        **counts,
    }

    return KnowledgeEntry(
        title=f"{submission.stem} - HTML Document",
        content=content,
        source_url=html_url,
        created_by=user_id,
        language=options.language,
        embedding=embedding or None,
        confidence_scores=confidence_scores(manifest),
        search_keywords=derive_keywords(text),
        metadata=metadata,
    )


def completed_job_patch(
    entry: KnowledgeEntry,
    knowledge_entry_id: str,
    processing_time_ms: int,
    page_count: Optional[int],
) -> Dict[str, Any]:
    """Row update that marks a processing job completed."""
    return {
        "processing_status": JobStatus.COMPLETED.value,
        "processing_completed_at": datetime.now().isoformat(),
        "processing_time_ms": processing_time_ms,
        "document_title": entry.title,
        "confidence_score_avg": entry.confidence_scores["overall"],
        "document_keywords": ", ".join(entry.search_keywords),
        "document_classification": {
            "content_type": "pdf_html_document",
            "processing_method": PROCESSING_METHOD,
        },
        "knowledge_entry_id": knowledge_entry_id,
        "total_pages": page_count,
    }
