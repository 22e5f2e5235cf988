"""
ConvertAPI client for PDF to HTML conversion.

The service is called with the stored PDF's public URL and returns a list of
result files. The HTML artifact is then fetched from its download URL, or
decoded from the inline FileData payload when no URL is present.
"""
import base64
import binascii
import re
from typing import Any, Dict, Optional

import httpx

from ...api.exceptions import ConversionError, ExtractionError
from ...core.config import CONVERTAPI_BASE_URL, CONVERTAPI_KEY, DEFAULT_MAX_PAGES, HTTP_TIMEOUT_SECONDS
from ...core.logging_config import get_logger

logger = get_logger(__name__)

HTML_URL_KEYS = ("Url", "url", "FileUrl", "downloadUrl")

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")
_WHITESPACE_RE = re.compile(r"\s")


def decode_file_data(raw: str) -> str:
    """
    Decode an inline FileData payload.

    A payload made only of base64 characters is decoded, and the decoded
    text is kept only if it is UTF-8 and looks like markup. Anything else is
    returned unchanged as literal HTML.
    """
    compact = _WHITESPACE_RE.sub("", raw)
    if not compact or not _BASE64_RE.match(compact):
        return raw

    try:
        decoded = base64.b64decode(compact, validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        logger.warning(f"FileData looked like base64 but did not decode, using raw data: {e}")
        return raw

    if "<" not in decoded:
        logger.warning("Decoded FileData does not look like HTML, using raw data")
        return raw
    return decoded


class ConvertAPIClient:
    """Thin async client for the ConvertAPI pdf -> html endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = CONVERTAPI_KEY,
        base_url: str = CONVERTAPI_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client
        self.timeout = timeout

    @staticmethod
    def build_parameters(source_url: str, max_pages: int = DEFAULT_MAX_PAGES) -> Dict[str, Any]:
        """Request body: inline CSS, no embedded images, optional page cap."""
        parameters = [
            {"Name": "File", "FileValue": {"Url": source_url}},
            {"Name": "EmbedCss", "Value": True},
            {"Name": "EmbedImages", "Value": False},
        ]
        if max_pages > 0:
            parameters.append({"Name": "PageRange", "Value": f"1-{max_pages}"})
        return {"Parameters": parameters}

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self.http_client is not None:
            return await self.http_client.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            return await client.request(method, url, **kwargs)

    async def convert(self, source_url: str, max_pages: int = DEFAULT_MAX_PAGES) -> Dict[str, Any]:
        """
        Convert the PDF at `source_url` and return the HTML file descriptor.

        Raises:
            ConversionError: missing key, non-2xx response, or no .html file
        """
        if not self.api_key:
            raise ConversionError(
                "ConvertAPI key not configured. Set CONVERTAPI_KEY to enable PDF conversion",
                stage="convertapi-conversion",
            )

        logger.info(f"Converting PDF to HTML (pages: {f'1-{max_pages}' if max_pages > 0 else 'all'})")
        try:
            response = await self._request(
                "POST",
                f"{self.base_url}/convert/pdf/to/html",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=self.build_parameters(source_url, max_pages),
            )
        except httpx.TimeoutException as e:
            raise ConversionError(f"ConvertAPI request timed out: {e}", stage="convertapi-conversion") from e
        except httpx.HTTPError as e:
            raise ConversionError(f"ConvertAPI request failed: {e}", stage="convertapi-conversion") from e

        if not response.is_success:
            raise ConversionError(
                f"ConvertAPI request failed: {response.status_code} - {response.text}",
                stage="convertapi-conversion",
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ConversionError(
                "ConvertAPI request failed: invalid JSON response", stage="convertapi-conversion"
            ) from e
        files = (body.get("Files") if isinstance(body, dict) else None) or []
        if not files:
            raise ConversionError("No HTML file returned from ConvertAPI", stage="convertapi-conversion")

        html_file = next((f for f in files if str(f.get("FileName", "")).endswith(".html")), None)
        if html_file is None:
            logger.error(f"ConvertAPI returned files without HTML: {[f.get('FileName') for f in files]}")
            raise ConversionError("No HTML file found in ConvertAPI response", stage="convertapi-conversion")

        logger.info(f"ConvertAPI conversion completed: {html_file.get('FileName')}")
        return html_file

    async def fetch_html(self, html_file: Dict[str, Any]) -> str:
        """
        Obtain HTML text from a ConvertAPI file descriptor.

        A download URL is preferred; inline FileData is the fallback.

        Raises:
            ExtractionError: download failed or no content is available
        """
        html_url = next((html_file[key] for key in HTML_URL_KEYS if html_file.get(key)), None)

        if html_url:
            logger.info(f"Downloading HTML content from {html_url}")
            try:
                response = await self._request("GET", html_url)
            except httpx.HTTPError as e:
                raise ExtractionError(f"Failed to download HTML: {e}", stage="html-extraction") from e
            if not response.is_success:
                raise ExtractionError(f"Failed to download HTML: {response.status_code}", stage="html-extraction")
            html = response.text
        elif html_file.get("FileData"):
            logger.warning("No HTML download URL, falling back to FileData")
            html = decode_file_data(str(html_file["FileData"]))
        else:
            raise ExtractionError(
                f"No HTML content found. Available properties: {', '.join(html_file.keys())}",
                stage="html-extraction",
            )

        if not html.strip():
            raise ExtractionError("Extracted HTML content is empty", stage="html-extraction")

        logger.info(f"Extracted HTML content ({len(html)} characters)")
        return html
