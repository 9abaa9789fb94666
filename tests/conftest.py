import base64
import json

import pytest

from app import create_app
from prompt_store import BackendError


class FakeStore:
    def __init__(self, error=None):
        self.error = error
        self.puts = []

    def put(self, key, body, content_type):
        if self.error is not None:
            raise self.error
        self.puts.append((key, body, content_type))


def encode(payload) -> str:
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


@pytest.fixture()
def store():
    return FakeStore()


@pytest.fixture()
def client(store):
    return create_app(store).test_client()


@pytest.fixture()
def failing_client():
    store = FakeStore(error=BackendError("403 Forbidden: bucket llm-visibility"))
    return create_app(store).test_client(), store
