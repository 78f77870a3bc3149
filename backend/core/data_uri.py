"""
Data URI helpers

Documents travel as ``data:<mime>;base64,<payload>`` strings between the
client and the flows.
"""
import base64
import binascii
import re
from dataclasses import dataclass

from core.exceptions import InvalidDataUriError

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?P<params>(?:;[\w.+-]+=[^;,]*)*);base64,(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class DecodedDocument:
    mime_type: str
    data: bytes


def decode_data_uri(uri: str) -> DecodedDocument:
    """Split a base64 data URI into its MIME type and raw bytes."""
    match = _DATA_URI_RE.match((uri or "").strip())
    if match is None:
        raise InvalidDataUriError("Not a base64 data URI")

    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidDataUriError(f"Invalid base64 payload: {e}")

    if not data:
        raise InvalidDataUriError("Data URI payload is empty")

    return DecodedDocument(mime_type=match.group("mime").lower(), data=data)


def encode_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
