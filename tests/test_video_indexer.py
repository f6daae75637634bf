"""Tests for the Azure Video Indexer adapter."""

import httpx

from src.core.results import ErrorKind
from src.providers.video_indexer import AzureVideoIndexerAdapter

INDEX = {
    "state": "Processed",
    "summarizedInsights": {
        "duration": {"seconds": 3.0},
        "scenes": [{"id": 1, "instances": [{"start": "0:00:00", "end": "0:00:03"}]}],
        "emotions": [{"type": "Joy", "instances": [{"start": "0:00:01", "end": "0:00:02", "confidence": 0.7}]}],
        "faces": [{"id": 7, "name": None, "confidence": 0.9, "instances": [{"start": "0:00:00", "end": "0:00:03"}]}],
        "topics": [{"name": "Travel", "confidence": 0.6, "instances": []}],
        "labels": [{"name": "person", "confidence": 0.99, "instances": []}],
    },
}


class IndexerBackend:
    def __init__(self, states):
        self.states = list(states)
        self.deleted = []
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/AccessToken"):
            return httpx.Response(200, text='"token-123"')
        if request.method == "POST" and path.endswith("/Videos"):
            assert request.url.params["accessToken"] == "token-123"
            return httpx.Response(200, json={"id": "vid-1"})
        if path.endswith("/Videos/vid-1/Index"):
            state = self.states.pop(0) if len(self.states) > 1 else self.states[0]
            return httpx.Response(200, json={**INDEX, "state": state})
        if request.method == "DELETE":
            self.deleted.append(path)
            return httpx.Response(204)
        return httpx.Response(404)


def adapter(backend, **kwargs):
    return AzureVideoIndexerAdapter(
        "key", "trial", "acct",
        poll_interval=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(backend)),
        **kwargs,
    )


async def test_indexes_normalizes_and_deletes():
    backend = IndexerBackend(["Uploaded", "Processing", "Processed"])
    result = await adapter(backend).analyze(b"video")

    assert result.ok
    insights = result.value
    assert insights.duration_sec == 3.0
    assert insights.emotions[0]["type"] == "Joy"
    assert insights.emotions[0]["instances"][0]["confidence"] == 0.7
    assert insights.faces[0]["name"] == "Unknown person"
    assert [t["name"] for t in insights.topics] == ["Travel"]
    assert backend.deleted == ["/trial/Accounts/acct/Videos/vid-1"]


async def test_failed_indexing_still_deletes():
    backend = IndexerBackend(["Failed"])
    result = await adapter(backend).analyze(b"video")

    assert result.error == ErrorKind.UNKNOWN
    assert len(backend.deleted) == 1


async def test_poll_exhaustion_is_timeout():
    backend = IndexerBackend(["Processing"])
    result = await adapter(backend, poll_attempts=2).analyze(b"video")

    assert result.error == ErrorKind.TIMEOUT
    assert len(backend.deleted) == 1


async def test_partial_credentials_make_no_request():
    backend = IndexerBackend(["Processed"])
    unconfigured = AzureVideoIndexerAdapter(
        "key", None, "acct", http_client=httpx.AsyncClient(transport=httpx.MockTransport(backend))
    )

    result = await unconfigured.analyze(b"video")

    assert result.error == ErrorKind.UNAVAILABLE
    assert backend.requests == []
