"""Payload decoding, storage keys, and the GCS writer for prompt data."""

from __future__ import annotations

import base64
import datetime
import json
from typing import Any, Optional, Protocol

import requests
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

DEFAULT_PREFIX = "prompt-data"
UNKNOWN_CONVERSATION = "unknown"


class PromptDataError(Exception):
    """Base class for failures while saving prompt data."""


class InputDecodeError(PromptDataError):
    """The `data` field was not base64 of UTF-8 JSON."""


class BackendError(PromptDataError):
    """The object store rejected or failed the write."""


class PromptStore(Protocol):
    def put(self, key: str, body: str, content_type: str) -> None:
        ...


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def decode_payload(data: Any) -> Any:
    try:
        text = base64.b64decode(data).decode("utf-8")
        return json.loads(text, parse_constant=_reject_constant)
    except (TypeError, ValueError) as exc:
        raise InputDecodeError(str(exc)) from exc


def serialize_payload(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, allow_nan=False)


def _timestamp(now: datetime.datetime) -> str:
    # 2026-10-19T12:34:56.789Z -> 2026-10-19T12-34-56-789Z
    stamp = now.astimezone(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    stamp = f"{stamp}.{now.microsecond // 1000:03d}Z"
    return stamp.replace(":", "-").replace(".", "-")


def build_storage_key(
    payload: Any,
    now: Optional[datetime.datetime] = None,
    prefix: str = DEFAULT_PREFIX,
) -> str:
    """Object key for a payload: ``{prefix}/{conversation_id}_{timestamp}.json``.

    A JSON ``null`` payload has no conversation id to read and is rejected.

    Two payloads with the same conversation id saved within the same
    millisecond get the same key; the later write wins.
    """
    if payload is None:
        raise InputDecodeError("Cannot read conversation_id of a null payload")
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    conv_id = payload.get("conversation_id") if isinstance(payload, dict) else None
    conv_id = conv_id or UNKNOWN_CONVERSATION
    return f"{prefix}/{conv_id}_{_timestamp(now)}.json"


class GCSPromptStore:
    """Writes objects into a single Cloud Storage bucket."""

    def __init__(self, bucket_name: str, client: Optional[storage.Client] = None) -> None:
        self.bucket_name = bucket_name
        self._client = client

    @property
    def client(self) -> storage.Client:
        # Created once per process and reused across invocations.
        if self._client is None:
            self._client = storage.Client()
        return self._client

    def put(self, key: str, body: str, content_type: str) -> None:
        try:
            blob = self.client.bucket(self.bucket_name).blob(key)
            blob.upload_from_string(body, content_type=content_type)
        except (
            api_exceptions.GoogleAPIError,
            auth_exceptions.GoogleAuthError,
            requests.exceptions.RequestException,
        ) as exc:
            raise BackendError(str(exc)) from exc


__all__ = [
    "BackendError",
    "GCSPromptStore",
    "InputDecodeError",
    "PromptDataError",
    "PromptStore",
    "build_storage_key",
    "decode_payload",
    "serialize_payload",
]
