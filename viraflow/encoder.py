"""Base64 encoding of uploaded files for transport to Gemini."""

import asyncio
import base64
import binascii
import logging
import os

from .errors import ReadError

logger = logging.getLogger(__name__)

_DATA_URI_MARKER = ";base64,"


def strip_data_uri(text: str) -> str:
    """Drop a ``data:<mime>;base64,`` prefix, if any, keeping only the payload."""
    if text.startswith("data:") and _DATA_URI_MARKER in text:
        return text.split(",", 1)[1]
    return text


def encode_bytes(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_payload(payload: str) -> bytes:
    """Turn an encoded payload (optionally a data URI) back into raw bytes."""
    try:
        return base64.b64decode(strip_data_uri(payload), validate=True)
    except binascii.Error as exc:
        raise ReadError(f"Payload is not valid Base64: {exc}") from exc


def _read_file(path: str | os.PathLike) -> bytes:
    with open(path, "rb") as f:
        return f.read()


async def encode_file(path: str | os.PathLike) -> str:
    """Read ``path`` off the event loop and return its bytes as Base64 text."""
    try:
        data = await asyncio.to_thread(_read_file, path)
    except OSError as exc:
        raise ReadError(f"Could not read {os.fspath(path)}: {exc.strerror or exc}") from exc
    logger.debug("Encoded %s (%d bytes)", path, len(data))
    return encode_bytes(data)
