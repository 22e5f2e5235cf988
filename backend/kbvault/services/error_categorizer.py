"""
Maps pipeline failures to a user-facing category, message and
troubleshooting checklist.

Categories are matched in table order against the lowercased error message;
the first category with a matching substring wins.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class ErrorCategory:
    name: str
    patterns: Tuple[str, ...]
    user_message: str
    troubleshooting: Tuple[str, ...] = ()


@dataclass
class CategorizedError:
    category: str
    user_message: str
    technical_details: str
    troubleshooting: List[str] = field(default_factory=list)
    stage: Optional[str] = None

    @property
    def job_error_message(self) -> str:
        """The string stored on a failed ProcessingJob."""
        return f"{self.category}: {self.user_message} | Technical: {self.technical_details}"

    def to_dict(self) -> dict:
        return {
            "error": self.user_message,
            "error_category": self.category,
            "technical_details": self.technical_details,
            "troubleshooting": list(self.troubleshooting),
            "stage": self.stage,
        }


ERROR_CATEGORIES: Tuple[ErrorCategory, ...] = (
    ErrorCategory(
        "API_KEY_MISSING",
        ("convertapi_key", "convertapi key"),
        "ConvertAPI key is not configured properly.",
        (
            "Check that CONVERTAPI_KEY is set in the service environment",
            "Verify the API key is valid and has sufficient credits",
            "Contact your administrator to configure the API key",
        ),
    ),
    ErrorCategory(
        "CONVERTAPI_REQUEST_FAILED",
        ("convertapi request failed",),
        "ConvertAPI service rejected the PDF conversion request.",
        (
            "Verify the PDF file is not corrupted or password-protected",
            "Check if the file size is under 25MB limit",
            "Ensure the PDF contains readable text (not just scanned images)",
            "Try a different PDF file to test the service",
            "Check ConvertAPI account credits and service status",
        ),
    ),
    ErrorCategory(
        "CONVERSION_FAILED",
        ("no html file",),
        "PDF to HTML conversion did not produce expected output.",
        (
            "The PDF may be corrupted or in an unsupported format",
            "Try converting the PDF to a newer format first",
            "Ensure the PDF has actual content (not just images)",
            "Contact support with the problematic PDF file",
        ),
    ),
    ErrorCategory(
        "DOWNLOAD_FAILED",
        ("failed to download html", "no html content"),
        "Could not download the converted HTML from ConvertAPI.",
        (
            "Check your internet connection stability",
            "Retry the conversion process",
            "ConvertAPI servers may be temporarily unavailable",
            "Contact support if the issue persists",
        ),
    ),
    ErrorCategory(
        "AUTH_ERROR",
        ("not authenticated", "authentication"),
        "You must be signed in to process documents.",
        (
            "Sign in again and retry the upload",
            "Check that your session has not expired",
        ),
    ),
    ErrorCategory(
        "VALIDATION_ERROR",
        ("invalid pdf", "encrypted"),
        "The uploaded file is not a readable PDF.",
        (
            "Make sure the file is a PDF and opens in a PDF viewer",
            "Remove password protection before uploading",
            "Try re-exporting the document to PDF",
        ),
    ),
    ErrorCategory(
        "STORAGE_ERROR",
        ("upload", "storage"),
        "Failed to upload or store files in object storage.",
        (
            "Check your internet connection",
            "Verify storage buckets are properly configured",
            "Try uploading a smaller file",
            "Check if you have sufficient storage quota",
        ),
    ),
    ErrorCategory(
        "EMBEDDING_ERROR",
        ("embedding", "openai"),
        "Failed to generate embeddings for the document.",
        (
            "Check OpenAI API key configuration",
            "Verify OpenAI API quota and billing",
            "Try processing a smaller document",
            "Check if the extracted text is valid",
        ),
    ),
    ErrorCategory(
        "DATABASE_ERROR",
        ("knowledge base", "database"),
        "Failed to save document to the knowledge base.",
        (
            "Check database connection",
            "Verify user permissions",
            "Check if the document data is valid",
            "Try processing again after a few minutes",
        ),
    ),
    ErrorCategory(
        "MEMORY_LIMIT",
        ("memory", "limit"),
        "Document is too large and exceeded memory limits.",
        (
            "Try processing a smaller PDF file (under 5MB)",
            "Split large documents into smaller sections",
            "Reduce the page range for processing",
            "Contact support for processing large documents",
        ),
    ),
    ErrorCategory(
        "TIMEOUT_ERROR",
        ("timeout", "timed out"),
        "Processing timed out due to document complexity.",
        (
            "Try processing a simpler PDF document",
            "Reduce the number of pages to process",
            "Retry the operation",
            "Contact support for complex documents",
        ),
    ),
)

UNKNOWN_ERROR = ErrorCategory(
    "UNKNOWN_ERROR",
    (),
    "An unexpected error occurred during PDF processing.",
    (
        "Retry the operation",
        "Contact support if the issue persists",
    ),
)


def categorize_error(error: BaseException) -> CategorizedError:
    """Classify an exception by its message."""
    technical = str(error) or type(error).__name__
    message = technical.lower()

    category = next(
        (c for c in ERROR_CATEGORIES if any(pattern in message for pattern in c.patterns)),
        UNKNOWN_ERROR,
    )
    return CategorizedError(
        category=category.name,
        user_message=category.user_message,
        technical_details=technical,
        troubleshooting=list(category.troubleshooting),
        stage=getattr(error, "stage", None),
    )
