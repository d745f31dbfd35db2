"""
Response decoding for provider adapters.

Each adapter declares an ordered table of extraction rules instead of
guessing the payload shape. Rules are tried in order; the first one that
finds a value wins.
"""
import base64
import binascii
import io
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from ..core.errors import MalformedResponse

MAX_ERROR_LENGTH = 300


class PayloadKind(Enum):
    """Where the media bytes live in a provider response."""
    INLINE_BASE64 = "inline_base64"
    REMOTE_URL = "remote_url"
    RAW_BINARY = "raw_binary"


@dataclass(frozen=True)
class ExtractionRule:
    """
    One way of finding the payload in a response.

    ``path`` is a dotted path into the JSON document. Integer segments index
    lists and ``*`` matches the first list element for which the rest of the
    path resolves. RAW_BINARY rules ignore the path and take the body.
    """
    kind: PayloadKind
    path: str = ""
    mime_path: Optional[str] = None
    seed_path: Optional[str] = None
    default_mime: str = "image/png"


@dataclass
class ProviderResponse:
    """Buffered HTTP response."""
    status: int
    content_type: str
    body: bytes

    @property
    def mime_type(self) -> str:
        return self.content_type.split(";")[0].strip().lower()

    @property
    def is_json(self) -> bool:
        return "json" in self.mime_type

    @property
    def is_html(self) -> bool:
        return "html" in self.mime_type

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


@dataclass
class Payload:
    """Decoded media reference."""
    kind: PayloadKind
    mime_type: str
    data: Optional[bytes] = None
    url: Optional[str] = None
    seed: Optional[int] = None


def lookup(document: Any, path: str) -> Any:
    """Resolve a dotted path, returning None when any segment is missing."""
    if not path:
        return document
    return _lookup(document, path.split("."))


def _lookup(document: Any, segments: Sequence[str]) -> Any:
    if not segments:
        return document
    head, rest = segments[0], segments[1:]

    if head == "*":
        if not isinstance(document, list):
            return None
        for item in document:
            value = _lookup(item, rest)
            if value is not None:
                return value
        return None

    if isinstance(document, list):
        try:
            return _lookup(document[int(head)], rest)
        except (ValueError, IndexError):
            return None

    if isinstance(document, dict) and head in document:
        return _lookup(document[head], rest)
    return None


def decode_base64(value: str, provider: Optional[str] = None) -> bytes:
    """Decode a base64 string, tolerating a data URI prefix."""
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedResponse(
            f"Provider returned invalid base64 payload: {e}",
            provider=provider
        ) from e


def _as_seed(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def extract_payload(
    response: ProviderResponse,
    rules: Iterable[ExtractionRule],
    provider: Optional[str] = None
) -> Payload:
    """
    Apply extraction rules to a successful response.

    Args:
        response: Buffered provider response
        rules: Ordered extraction rules
        provider: Provider id for error attribution

    Returns:
        The first payload a rule finds

    Raises:
        MalformedResponse: No rule matched
    """
    document = None
    if response.is_json:
        try:
            document = response.json()
        except (UnicodeDecodeError, ValueError):
            document = None

    for rule in rules:
        if rule.kind is PayloadKind.RAW_BINARY:
            if response.body and not response.is_json and not response.is_html:
                return Payload(
                    kind=rule.kind,
                    mime_type=response.mime_type or rule.default_mime,
                    data=response.body,
                )
            continue

        if document is None:
            continue
        value = lookup(document, rule.path)
        if not isinstance(value, str) or not value:
            continue

        mime = lookup(document, rule.mime_path) if rule.mime_path else None
        seed = _as_seed(lookup(document, rule.seed_path)) if rule.seed_path else None

        if rule.kind is PayloadKind.INLINE_BASE64:
            return Payload(
                kind=rule.kind,
                mime_type=mime or rule.default_mime,
                data=decode_base64(value, provider),
                seed=seed,
            )
        return Payload(
            kind=rule.kind,
            mime_type=mime or rule.default_mime,
            url=value,
            seed=seed,
        )

    raise MalformedResponse(
        f"Provider response contained no recognizable media payload: {summarize_body(response)}",
        provider=provider,
        status=response.status,
    )


def sniff_image_mime(data: bytes, provider: Optional[str] = None) -> str:
    """
    Identify image bytes with Pillow.

    Raises:
        MalformedResponse: The bytes are not a decodable image
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise MalformedResponse(
            f"Provider returned undecodable image data: {e}",
            provider=provider
        ) from e
    return Image.MIME.get(image_format, "image/png")


def summarize_body(response: ProviderResponse) -> str:
    """Short human-readable description of a response body."""
    if response.is_html:
        return "Provider returned an HTML error page."
    if response.is_json:
        try:
            message = error_message(response.json())
        except (UnicodeDecodeError, ValueError):
            message = None
        if message:
            return truncate(message)
    text = response.text().strip()
    return truncate(text) if text else "Unknown error."


def error_message(document: Any) -> Optional[str]:
    """Pull the human message out of the usual error envelopes."""
    if isinstance(document, str):
        return document
    if not isinstance(document, dict):
        return None

    error = document.get("error")
    if isinstance(error, dict):
        nested = error.get("message") or error.get("detail")
        if nested:
            return str(nested)
    elif error:
        return str(error)

    for key in ("message", "detail", "details"):
        value = document.get(key)
        if isinstance(value, str) and value:
            return value
        if isinstance(value, list) and value:
            first = value[0]
            if isinstance(first, dict):
                return str(first.get("msg") or first.get("message") or first)
            return str(first)
    return None


def truncate(text: str, limit: int = MAX_ERROR_LENGTH) -> str:
    return text if len(text) <= limit else text[:limit - 3] + "..."
