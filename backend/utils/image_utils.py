import base64
import binascii
import re

_MAGIC_SIGNATURES: list[tuple[bytes, str]] = [
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
]

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[^,]*)?;base64,", re.IGNORECASE)


def sniff_image_format(image_bytes: bytes) -> str | None:
    head = image_bytes[:16]
    for magic, mime in _MAGIC_SIGNATURES:
        if head.startswith(magic):
            return mime
    if len(head) >= 12 and head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return "image/webp"
    return None


def split_data_url(payload: str) -> tuple[str, str | None]:
    """Strip a ``data:<mime>;base64,`` prefix, returning (base64_body, mime)."""
    match = _DATA_URL_RE.match(payload)
    if not match:
        return payload, None
    return payload[match.end():], match.group("mime")


def decode_image_payload(
    image_base64: str | None,
    *,
    media_type: str | None = None,
    default_media_type: str = "image/jpeg",
    max_bytes: int | None = None,
) -> tuple[bytes, str]:
    """Decode a base64 image from a request body.

    The declared media type is trusted as-is; only a missing one falls back to
    the data-URL type or ``default_media_type``.
    """
    body = (image_base64 or "").strip()
    if not body:
        raise ValueError("No image provided")

    body, data_url_mime = split_data_url(body)
    body = "".join(body.split())
    try:
        image_bytes = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image is not valid base64") from exc
    if not image_bytes:
        raise ValueError("No image provided")
    if max_bytes is not None and len(image_bytes) > max_bytes:
        raise ValueError(f"Image too large. Maximum size is {max_bytes} bytes.")

    resolved = (media_type or "").strip() or data_url_mime or default_media_type
    return image_bytes, resolved
