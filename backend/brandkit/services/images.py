"""Image helpers: base64 handling, platform resizing and URL dereferencing.

Pillow is imported lazily so that the API process and the test-suite do not
pay for it unless a backdrop actually needs resizing.
"""
from __future__ import annotations

import base64
import binascii
import io

import httpx

from brandkit.schemas.brand_kit import ImageRef, InlineImage, UrlImage
from brandkit.services.fallback import AdapterError

# 1x1 transparent PNG used when no logo could be generated at all.
PLACEHOLDER_PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR4nGNgYAAAAAMAASsJTYQAAAAASUVORK5CYII="
)


def _load_pil():  # pragma: no cover - import guard
    try:
        from PIL import Image, ImageOps  # type: ignore

        return Image, ImageOps
    except Exception as exc:  # pragma: no cover - best effort
        raise RuntimeError("Pillow (PIL) is required for image resizing") from exc


def placeholder_image() -> InlineImage:
    return InlineImage(data=PLACEHOLDER_PNG_BASE64, mime_type="image/png")


def encode_image(data: bytes, mime_type: str = "image/png") -> InlineImage:
    return InlineImage(data=base64.b64encode(data).decode("ascii"), mime_type=mime_type)


def decode_image(image: InlineImage) -> bytes:
    payload = image.data
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise AdapterError("Inline image is not valid base64") from exc


def resize_to_cover(image: InlineImage, width: int, height: int, *, quality: int = 92) -> InlineImage:
    """Scale and centre-crop ``image`` to exactly ``width`` x ``height`` (JPEG)."""

    Image, ImageOps = _load_pil()
    with Image.open(io.BytesIO(decode_image(image))) as source:
        fitted = ImageOps.fit(
            source.convert("RGB"),
            (width, height),
            method=Image.LANCZOS,
            centering=(0.5, 0.5),
        )
    buffer = io.BytesIO()
    fitted.save(buffer, format="JPEG", quality=quality)
    return encode_image(buffer.getvalue(), mime_type="image/jpeg")


async def fetch_bytes(
    url: str, *, client: httpx.AsyncClient | None = None, timeout: float = 30.0
) -> tuple[bytes, str | None]:
    """GET ``url`` and return its body plus content type."""

    if client is None:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
            return await fetch_bytes(url, client=own_client)
    response = await client.get(url)
    response.raise_for_status()
    return response.content, response.headers.get("content-type")


async def ensure_inline(
    ref: ImageRef, *, client: httpx.AsyncClient | None = None
) -> InlineImage:
    """Return inline bytes for ``ref``, downloading URL refs first."""

    if isinstance(ref, InlineImage):
        return ref
    if not isinstance(ref, UrlImage):
        raise AdapterError(f"Unsupported image reference: {type(ref).__name__}")
    try:
        data, content_type = await fetch_bytes(ref.location, client=client)
    except httpx.HTTPError as exc:
        raise AdapterError(f"Could not download image {ref.location}") from exc
    mime_type = (content_type or "image/png").split(";")[0]
    return encode_image(data, mime_type=mime_type)


__all__ = [
    "PLACEHOLDER_PNG_BASE64",
    "decode_image",
    "encode_image",
    "ensure_inline",
    "fetch_bytes",
    "placeholder_image",
    "resize_to_cover",
]
