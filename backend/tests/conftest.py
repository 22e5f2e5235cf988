import io
import os
import tempfile
from types import SimpleNamespace

# Settings are read at import time, so they are pinned before kbvault loads
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["LOG_TO_FILE"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUTH_TYPE"] = "static"
os.environ["STORAGE_TYPE"] = "local"
os.environ["DATABASE_TYPE"] = "memory"
os.environ["STATIC_AUTH_TOKENS"] = "test-token:user-1:user@example.com"
os.environ["LOCAL_STORAGE_DIR"] = tempfile.mkdtemp(prefix="kbvault-test-")

import httpx
import pytest
from pypdf import PdfWriter

from kbvault.domain.entities import AuthenticatedUser
from kbvault.domain.value_objects import UserId
from kbvault.services.auth import StaticTokenAuthService
from kbvault.services.conversion import ConvertAPIClient
from kbvault.services.database import MemoryAdapter
from kbvault.services.embedding_service import EmbeddingService
from kbvault.services.image_relocation import ImageRelocationEngine
from kbvault.services.pipeline import PDFProcessingPipeline
from kbvault.services.storage import LocalObjectStorage
from kbvault.services.workflow_observer import WorkflowStore

PUBLIC_BASE = "http://testserver"
CONVERT_BASE = "https://convert.test"
TOKEN = "test-token"

PNG_BYTES = b"\x89PNG\r\n\x1a\n"
PNG_BASE64 = "iVBORw0KGgo="
REMOTE_IMAGE_URL = "https://images.example.com/figures/chart.png"

SAMPLE_HTML = (
    "<html><head><style>p { color: red; }</style></head><body>"
    "<h1>Quarterly Material Report</h1>"
    "<p>Ceramic tiles &amp; natural stone performance summary.</p>"
    f'<img src="{REMOTE_IMAGE_URL}" alt="chart">'
    f'<img src="data:image/png;base64,{PNG_BASE64}" alt="inline">'
    "<script>console.log('ignored')</script>"
    "</body></html>"
)


def make_pdf(pages: int = 2, password: str = None) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    if password:
        writer.encrypt(password)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def convertapi_handler(html: str = SAMPLE_HTML, calls: list = None):
    """MockTransport handler for ConvertAPI: conversion plus artifact download."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if request.method == "POST" and request.url.path == "/convert/pdf/to/html":
            return httpx.Response(200, json={
                "ConversionCost": 1,
                "Files": [{"FileName": "report.html", "FileExt": "html", "Url": f"{CONVERT_BASE}/d/report.html"}],
            })
        if request.method == "GET" and request.url.path == "/d/report.html":
            return httpx.Response(200, text=html, headers={"content-type": "text/html"})
        return httpx.Response(404)

    return handler


def image_host_handler(images: dict):
    """MockTransport handler serving `url -> (status, content_type, body)`."""

    def handler(request: httpx.Request) -> httpx.Response:
        status, content_type, body = images.get(str(request.url), (404, "text/plain", b"missing"))
        return httpx.Response(status, content=body, headers={"content-type": content_type})

    return handler


class FakeEmbeddings:
    def __init__(self, fail: bool = False, data: list = None):
        self.fail = fail
        self.data = data
        self.calls = []

    async def create(self, model, input, dimensions):
        self.calls.append({"model": model, "input": input, "dimensions": dimensions})
        if self.fail:
            raise RuntimeError("embedding backend unavailable")
        if self.data is not None:
            return SimpleNamespace(data=self.data)
        return SimpleNamespace(data=[SimpleNamespace(embedding=[0.25] * dimensions)])


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(base_dir=tmp_path / "storage", public_base_url=PUBLIC_BASE)


@pytest.fixture
def db():
    return MemoryAdapter()


@pytest.fixture
def workflow_store():
    return WorkflowStore()


@pytest.fixture
def auth_service():
    return StaticTokenAuthService(users={TOKEN: AuthenticatedUser(id=UserId("user-1"), email="user@example.com")})


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddings()


@pytest.fixture
def build_pipeline(storage, db, workflow_store, auth_service, fake_embeddings):
    """Factory for pipelines wired to in-memory capabilities and mock HTTP."""
    def _build(
        html: str = SAMPLE_HTML,
        images: dict = None,
        convert_key: str = "convert-key",
        embeddings=None,
        storage_override=None,
        convert_calls: list = None,
    ) -> PDFProcessingPipeline:
        if images is None:
            images = {REMOTE_IMAGE_URL: (200, "image/png", PNG_BYTES)}
        convert_client = httpx.AsyncClient(transport=httpx.MockTransport(convertapi_handler(html, convert_calls)))
        image_client = httpx.AsyncClient(transport=httpx.MockTransport(image_host_handler(images)))

        object_storage = storage_override or storage
        return PDFProcessingPipeline(
            auth_service=auth_service,
            storage=object_storage,
            db=db,
            converter=ConvertAPIClient(api_key=convert_key, base_url=CONVERT_BASE, http_client=convert_client),
            relocation_engine=ImageRelocationEngine(object_storage, http_client=image_client, fetch_delay=0),
            embedding_service=EmbeddingService(
                dimension=8,
                client=SimpleNamespace(embeddings=embeddings or fake_embeddings),
            ),
            workflow_store=workflow_store,
        )

    return _build
