from __future__ import annotations

import itertools
import json
from typing import Dict, Optional, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

UPSTREAM_URL = "http://upstream.test/api/v1/expenses"


class FakeUpstream:
    """In-memory stand-in for the mock data API."""

    def __init__(self) -> None:
        self.records: Dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self._ids = itertools.count(1)
        # When set, every request fails with this status, a connect error for 0,
        # or a read timeout for "timeout"
        self.fail_with: Optional[Union[int, str]] = None
        self.raw_collection: Optional[bytes] = None

    def seed(self, *records: dict) -> list[dict]:
        created = []
        for record in records:
            record_id = str(next(self._ids))
            stored = {**record, "id": record_id}
            self.records[record_id] = stored
            created.append(stored)
        return created

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if self.fail_with == 0:
            raise httpx.ConnectError("connection refused", request=request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"error": "upstream down"})

        prefix = httpx.URL(UPSTREAM_URL).path
        path = request.url.path
        if path == prefix:
            if request.method == "GET":
                if self.raw_collection is not None:
                    return httpx.Response(200, content=self.raw_collection)
                return httpx.Response(200, json=list(self.records.values()))
            if request.method == "POST":
                body = json.loads(request.content)
                return httpx.Response(201, json=self.seed(body)[0])
            return httpx.Response(405)

        record_id = path[len(prefix) + 1:]
        if record_id not in self.records:
            return httpx.Response(404, json="Not found")
        if request.method == "GET":
            return httpx.Response(200, json=self.records[record_id])
        if request.method == "PUT":
            body = json.loads(request.content)
            self.records[record_id] = {**body, "id": record_id}
            return httpx.Response(200, json=self.records[record_id])
        if request.method == "DELETE":
            return httpx.Response(200, json=self.records.pop(record_id))
        return httpx.Response(405)


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture()
def settings() -> Settings:
    return Settings(upstream_url=UPSTREAM_URL)


@pytest.fixture()
def make_client(upstream):
    clients = []

    def _make(settings: Settings) -> TestClient:
        app = create_app(settings, transport=httpx.MockTransport(upstream.handler))
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture()
def client(make_client, settings) -> TestClient:
    return make_client(settings)
