"""
Image Relocation Engine.

Finds images referenced by converted HTML (remote http(s) URLs and inline
base64 data URLs), copies their bytes into our own object storage and
rewrites the HTML to point at the stored copies.
"""
import asyncio
import base64
import binascii
import re
import time
from typing import List, Optional

import httpx

from .storage.base import ObjectStorageInterface
from ..api.exceptions import ImageRelocationFailure
from ..core.config import (
    HTTP_TIMEOUT_SECONDS,
    IMAGE_FETCH_CONCURRENCY,
    IMAGE_FETCH_DELAY_SECONDS,
    IMAGE_USER_AGENT,
    MATERIAL_IMAGES_BUCKET,
    MAX_IMAGE_BYTES,
    PDF_DOCUMENTS_BUCKET,
)
from ..core.logging_config import get_logger
from ..domain.entities import ImageDiscovery, ImageReference, RelocatedImage, RelocationManifest
from ..domain.value_objects import ImageSourceKind, PublicUrl, StoragePath

logger = get_logger(__name__)

IMG_SRC_RE = re.compile(r"""<img[^>]*\ssrc=["']([^"']+)["'][^>]*>""", re.IGNORECASE)

# Two overlapping scans: data URLs inside <img src> and free-standing ones
# (CSS backgrounds, srcset, ...). The same payload is usually hit by both.
BASE64_PATTERNS = (
    re.compile(
        r"""<img[^>]*\ssrc=["'](?P<url>data:image/(?P<type>[^;]+);base64,(?P<data>[^"']+))["'][^>]*>""",
        re.IGNORECASE,
    ),
    re.compile(r"""(?P<url>data:image/(?P<type>[^;]+);base64,(?P<data>[^\s"'><)]+))""", re.IGNORECASE),
)

REMAINING_BASE64_RE = re.compile(r"""data:image/[^;]+;base64,[^"'\s>]+""", re.IGNORECASE)

_WHITESPACE_RE = re.compile(r"\s+")


def _now_ms() -> int:
    return int(time.time() * 1000)


def discover_http_images(html: str) -> List[ImageReference]:
    """<img src> values starting with http, deduplicated, in document order."""
    seen = set()
    images = []
    for match in IMG_SRC_RE.finditer(html):
        url = match.group(1)
        if url.startswith("http") and url not in seen:
            seen.add(url)
            images.append(ImageReference(kind=ImageSourceKind.HTTP, reference=url))
    return images


def discover_base64_images(html: str) -> List[ImageReference]:
    """
    Inline data-URL images from both base64 scans.

    Results are deduplicated by the exact data URL as written in the
    document, so a payload found by both patterns is reported once and the
    reference can be replaced verbatim.
    """
    seen = set()
    images = []
    for pattern in BASE64_PATTERNS:
        for match in pattern.finditer(html):
            data_url = match.group("url")
            if data_url in seen:
                continue
            seen.add(data_url)
            images.append(ImageReference(
                kind=ImageSourceKind.BASE64,
                reference=data_url,
                image_type=match.group("type").lower(),
                payload=match.group("data"),
            ))
    return images


def discover_images(html: str) -> ImageDiscovery:
    return ImageDiscovery(
        http_images=discover_http_images(html),
        base64_images=discover_base64_images(html),
    )


def rewrite_html(html: str, relocated: List[RelocatedImage]) -> str:
    """
    Replace every occurrence of each relocated reference with its public URL.

    Longer references are replaced first so a data URL that is a prefix of
    another one cannot split it.
    """
    for image in sorted(relocated, key=lambda img: len(img.original_reference), reverse=True):
        html = html.replace(image.original_reference, image.public_url)
    return html


def find_remaining_base64(html: str) -> List[str]:
    return REMAINING_BASE64_RE.findall(html)


def _extension_for(content_type: str) -> str:
    subtype = content_type.split(";")[0].strip().split("/")[-1]
    return subtype or "jpg"


class ImageRelocationEngine:
    """
    Transfers discovered images into object storage.

    Remote images go to the material-images bucket, decoded inline images to
    the pdf-documents bucket, both under `{user_id}/pdf-images/`. Every
    discovered reference ends up in the manifest as either a RelocatedImage
    or a skip reason.
    """

    def __init__(
        self,
        storage: ObjectStorageInterface,
        http_client: Optional[httpx.AsyncClient] = None,
        images_bucket: str = MATERIAL_IMAGES_BUCKET,
        documents_bucket: str = PDF_DOCUMENTS_BUCKET,
        max_image_bytes: int = MAX_IMAGE_BYTES,
        fetch_delay: float = IMAGE_FETCH_DELAY_SECONDS,
        concurrency: int = IMAGE_FETCH_CONCURRENCY,
        user_agent: str = IMAGE_USER_AGENT,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.storage = storage
        self.http_client = http_client
        self.images_bucket = images_bucket
        self.documents_bucket = documents_bucket
        self.max_image_bytes = max_image_bytes
        self.fetch_delay = fetch_delay
        self.concurrency = max(1, concurrency)
        self.user_agent = user_agent
        self.timeout = timeout

    async def relocate(self, discovery: ImageDiscovery, user_id: str) -> RelocationManifest:
        """Relocate every discovered image. Never raises for a single image."""
        manifest = RelocationManifest(
            http_found=len(discovery.http_images),
            base64_found=len(discovery.base64_images),
        )
        if discovery.total == 0:
            logger.info("No images found in HTML")
            return manifest

        if discovery.http_images:
            if self.http_client is not None:
                await self._relocate_remote_batch(discovery.http_images, user_id, manifest, self.http_client)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    await self._relocate_remote_batch(discovery.http_images, user_id, manifest, client)

        for index, image in enumerate(discovery.base64_images):
            try:
                manifest.record_success(await self._relocate_inline(image, user_id, index))
            except Exception as e:
                logger.warning(f"Skipping base64 image {index}: {e}")
                manifest.record_skip(image.reference, str(e))

        logger.info(
            f"Relocated {len(manifest.http_processed)}/{manifest.http_found} HTTP images and "
            f"{len(manifest.base64_processed)}/{manifest.base64_found} base64 images"
        )
        return manifest

    async def _relocate_remote_batch(
        self,
        images: List[ImageReference],
        user_id: str,
        manifest: RelocationManifest,
        client: httpx.AsyncClient,
    ):
        # FIFO semaphore keeps discovery order when concurrency is 1
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _one(index: int, image: ImageReference):
            async with semaphore:
                try:
                    return await self._relocate_remote(client, image, user_id, index)
                except Exception as e:
                    logger.warning(f"Skipping image {index + 1} ({image.reference}): {e}")
                    return str(e)
                finally:
                    await asyncio.sleep(self.fetch_delay)

        results = await asyncio.gather(*(_one(i, img) for i, img in enumerate(images)))
        for image, result in zip(images, results):
            if isinstance(result, RelocatedImage):
                manifest.record_success(result)
            else:
                manifest.record_skip(image.reference, result)

    async def _relocate_remote(
        self,
        client: httpx.AsyncClient,
        image: ImageReference,
        user_id: str,
        index: int,
    ) -> RelocatedImage:
        logger.debug(f"Downloading image {index + 1}: {image.reference}")
        data, content_type = await self._fetch_image(client, image.reference)

        filename = f"pdf-image-{index + 1}-{_now_ms()}.{_extension_for(content_type)}"
        path = f"{user_id}/pdf-images/{filename}"
        await self.storage.upload(self.images_bucket, path, data, content_type)
        public_url = await self.storage.get_public_url(self.images_bucket, path)

        return RelocatedImage(
            original_reference=image.reference,
            public_url=PublicUrl(public_url),
            filename=filename,
            size=len(data),
            kind=ImageSourceKind.HTTP,
            storage_path=StoragePath(path),
        )

    async def _fetch_image(self, client: httpx.AsyncClient, url: str):
        """Download an image, enforcing status, content type and size cap."""
        async with client.stream("GET", url, headers={"User-Agent": self.user_agent}) as response:
            if not response.is_success:
                raise ImageRelocationFailure(f"HTTP {response.status_code}", stage="image-download")

            content_type = response.headers.get("content-type", "")
            if not content_type.startswith("image/"):
                raise ImageRelocationFailure(
                    f"Invalid content type: {content_type or 'missing'}", stage="image-download"
                )

            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > self.max_image_bytes:
                raise ImageRelocationFailure(f"Image too large: {declared} bytes", stage="image-download")

            chunks = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > self.max_image_bytes:
                    raise ImageRelocationFailure(
                        f"Image too large: more than {self.max_image_bytes} bytes", stage="image-download"
                    )
                chunks.append(chunk)

        return b"".join(chunks), content_type

    async def _relocate_inline(self, image: ImageReference, user_id: str, index: int) -> RelocatedImage:
        try:
            data = base64.b64decode(_WHITESPACE_RE.sub("", image.payload or ""), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageRelocationFailure(f"Invalid base64 payload: {e}", stage="image-download") from e
        if not data:
            raise ImageRelocationFailure("Empty base64 payload", stage="image-download")

        filename = f"base64-image-{index}-{_now_ms()}.{image.image_type}"
        path = f"{user_id}/pdf-images/{filename}"
        await self.storage.upload(self.documents_bucket, path, data, f"image/{image.image_type}")
        public_url = await self.storage.get_public_url(self.documents_bucket, path)

        return RelocatedImage(
            original_reference=image.reference,
            public_url=PublicUrl(public_url),
            filename=filename,
            size=len(data),
            kind=ImageSourceKind.BASE64,
            storage_path=StoragePath(path),
        )
