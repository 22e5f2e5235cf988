import base64
import json

import httpx
import pytest

from kbvault.api.exceptions import ConversionError, ExtractionError
from kbvault.services.conversion import ConvertAPIClient, decode_file_data

BASE = "https://convert.test"


def _client(handler, api_key="key"):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ConvertAPIClient(api_key=api_key, base_url=BASE, http_client=http_client)


def test_build_parameters_with_page_cap():
    body = ConvertAPIClient.build_parameters("https://files.test/doc.pdf", max_pages=3)
    params = {p["Name"]: p for p in body["Parameters"]}
    assert params["File"]["FileValue"] == {"Url": "https://files.test/doc.pdf"}
    assert params["EmbedCss"]["Value"] is True
    assert params["EmbedImages"]["Value"] is False
    assert params["PageRange"]["Value"] == "1-3"


def test_build_parameters_without_page_cap():
    body = ConvertAPIClient.build_parameters("https://files.test/doc.pdf", max_pages=0)
    assert "PageRange" not in {p["Name"] for p in body["Parameters"]}


async def test_convert_returns_html_file_and_sends_bearer_auth():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"Files": [
            {"FileName": "doc.css", "Url": f"{BASE}/d/doc.css"},
            {"FileName": "doc.html", "Url": f"{BASE}/d/doc.html"},
        ]})

    html_file = await _client(handler).convert("https://files.test/doc.pdf", max_pages=5)

    assert html_file["FileName"] == "doc.html"
    assert seen[0].headers["Authorization"] == "Bearer key"
    assert seen[0].url.path == "/convert/pdf/to/html"
    sent = json.loads(seen[0].content)
    assert {"Name": "PageRange", "Value": "1-5"} in sent["Parameters"]


async def test_convert_without_key_fails_before_any_request():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(ConversionError, match="ConvertAPI key not configured"):
        await _client(handler, api_key=None).convert("https://files.test/doc.pdf")


async def test_convert_non_success_status():
    client = _client(lambda request: httpx.Response(401, text="Unauthorized"))
    with pytest.raises(ConversionError, match="ConvertAPI request failed: 401 - Unauthorized"):
        await client.convert("https://files.test/doc.pdf")


async def test_convert_success_status_with_non_json_body():
    client = _client(lambda request: httpx.Response(200, text="<html>gateway page</html>"))
    with pytest.raises(ConversionError, match="invalid JSON response"):
        await client.convert("https://files.test/doc.pdf")


async def test_convert_without_files():
    client = _client(lambda request: httpx.Response(200, json={"Files": []}))
    with pytest.raises(ConversionError, match="No HTML file returned from ConvertAPI"):
        await client.convert("https://files.test/doc.pdf")


async def test_convert_without_html_file():
    client = _client(lambda request: httpx.Response(200, json={"Files": [{"FileName": "doc.zip"}]}))
    with pytest.raises(ConversionError, match="No HTML file found in ConvertAPI response"):
        await client.convert("https://files.test/doc.pdf")


async def test_fetch_html_prefers_download_url():
    client = _client(lambda request: httpx.Response(200, text="<p>downloaded</p>"))
    html = await client.fetch_html({"FileName": "doc.html", "url": f"{BASE}/d/doc.html", "FileData": "ignored"})
    assert html == "<p>downloaded</p>"


async def test_fetch_html_download_failure():
    client = _client(lambda request: httpx.Response(500))
    with pytest.raises(ExtractionError, match="Failed to download HTML: 500"):
        await client.fetch_html({"FileName": "doc.html", "Url": f"{BASE}/d/doc.html"})


async def test_fetch_html_falls_back_to_base64_file_data():
    encoded = base64.b64encode(b"<html><body>inline</body></html>").decode()
    client = _client(lambda request: httpx.Response(500))
    html = await client.fetch_html({"FileName": "doc.html", "FileData": encoded})
    assert html == "<html><body>inline</body></html>"


async def test_fetch_html_without_content_lists_properties():
    client = _client(lambda request: httpx.Response(500))
    with pytest.raises(ExtractionError, match="Available properties: FileName, FileSize"):
        await client.fetch_html({"FileName": "doc.html", "FileSize": 10})


async def test_fetch_html_empty_content():
    client = _client(lambda request: httpx.Response(200, text="   "))
    with pytest.raises(ExtractionError, match="empty"):
        await client.fetch_html({"FileName": "doc.html", "Url": f"{BASE}/d/doc.html"})


def test_decode_file_data_keeps_literal_html():
    assert decode_file_data("<p>plain</p>") == "<p>plain</p>"


def test_decode_file_data_keeps_base64_looking_text_that_is_not_markup():
    # Decodes cleanly but has no markup, so the raw string wins
    raw = base64.b64encode(b"just words").decode()
    assert decode_file_data(raw) == raw


def test_decode_file_data_keeps_non_utf8_payload():
    raw = base64.b64encode(b"\xff\xfe\xfa<").decode()
    assert decode_file_data(raw) == raw
