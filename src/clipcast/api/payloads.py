"""Decoding of base64 media payloads sent by devices."""

from __future__ import annotations

import base64
import binascii
import re

from fastapi import status

from clipcast.api.errors import APIError, APIErrorCode
from clipcast.errors import MediaDecodeError

_DATA_URI_PREFIX = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,", re.IGNORECASE)


def strip_data_uri(value: str) -> str:
    """Drop a leading `data:<mime>;base64,` header if present."""
    return _DATA_URI_PREFIX.sub("", value.strip(), count=1)


def decode_media(value: str | None, *, field: str, missing_detail: str) -> bytes:
    """Decode a required base64 field, optionally data-URI prefixed.

    Raises:
        APIError: field missing or empty (400 BAD_REQUEST)
        MediaDecodeError: field is not valid base64
    """
    if not value:
        raise APIError(
            missing_detail,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=APIErrorCode.BAD_REQUEST,
        )
    encoded = "".join(strip_data_uri(value).split())
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MediaDecodeError(field, cause=exc) from exc
    if not data:
        raise MediaDecodeError(field)
    return data
