"""
PDF validation.

Confirms an uploaded object is a readable, non-encrypted PDF before it is
sent to the conversion service.
"""
import io
from dataclasses import dataclass

from pypdf import PdfReader

from ..api.exceptions import ValidationError
from ..core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class PDFInfo:
    page_count: int
    size: int


def validate_pdf(data: bytes) -> PDFInfo:
    """
    Check PDF bytes with pypdf.

    Raises:
        ValidationError: empty data, missing %PDF header, unparsable file,
            encrypted file, or a document with no pages
    """
    if not data:
        raise ValidationError("Invalid PDF: file is empty", stage="validation")
    if not data.lstrip()[:5].startswith(b"%PDF"):
        raise ValidationError("Invalid PDF: missing %PDF header", stage="validation")

    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            raise ValidationError("PDF is encrypted or password-protected", stage="validation")
        page_count = len(reader.pages)
    except ValidationError:
        raise
    except Exception as e:
        raise ValidationError(f"Invalid PDF: {e}", stage="validation") from e

    if page_count == 0:
        raise ValidationError("Invalid PDF: document has no pages", stage="validation")

    logger.debug(f"Validated PDF: {page_count} pages, {len(data)} bytes")
    return PDFInfo(page_count=page_count, size=len(data))
