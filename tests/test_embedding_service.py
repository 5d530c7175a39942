import asyncio
import json as jsonlib

import aiohttp
import pytest

from mflix_api.core.config import Settings
from mflix_api.core.errors import (
    EmbeddingAuthError,
    EmbeddingNotConfiguredError,
    EmbeddingServiceError,
)
from mflix_api.services.embedding_service import VoyageEmbeddingClient


class FakeResponse:
    def __init__(self, status, body):
        self.status = status
        self._body = body

    async def text(self):
        return self._body if isinstance(self._body, str) else jsonlib.dumps(self._body)

    async def json(self):
        if isinstance(self._body, str):
            raise ValueError("not json")
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []
        self.closed = False

    def post(self, url, json=None, headers=None):
        self.requests.append({"url": url, "json": json, "headers": headers})
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self):
        self.closed = True


def _client(session, api_key="voyage-test-key"):
    return VoyageEmbeddingClient(Settings(VOYAGE_API_KEY=api_key), session=session)


@pytest.mark.asyncio
async def test_embed_posts_query_payload():
    session = FakeSession(FakeResponse(200, {"data": [{"embedding": [0.1, 0.2, 0.3]}]}))

    vector = await _client(session).embed("a heist gone wrong")

    assert vector == [0.1, 0.2, 0.3]
    request = session.requests[0]
    assert request["url"] == "https://api.voyageai.com/v1/embeddings"
    assert request["json"] == {
        "input": ["a heist gone wrong"],
        "model": "voyage-3-large",
        "output_dimension": 2048,
        "input_type": "query",
    }
    assert request["headers"]["Authorization"] == "Bearer voyage-test-key"


@pytest.mark.asyncio
async def test_missing_key_fails_before_any_request():
    session = FakeSession(FakeResponse(200, {}))
    with pytest.raises(EmbeddingNotConfiguredError) as exc_info:
        await _client(session, api_key="  ").embed("anything")
    assert exc_info.value.code == "SERVICE_UNAVAILABLE"
    assert exc_info.value.status_code == 400
    assert session.requests == []


@pytest.mark.asyncio
async def test_unauthorized_is_passed_through_as_401():
    session = FakeSession(FakeResponse(401, "invalid api key"))
    with pytest.raises(EmbeddingAuthError) as exc_info:
        await _client(session).embed("anything")
    assert exc_info.value.status_code == 401
    assert exc_info.value.code == "EMBEDDING_AUTH_ERROR"


@pytest.mark.asyncio
async def test_server_error_maps_to_service_error():
    session = FakeSession(FakeResponse(500, "boom"))
    with pytest.raises(EmbeddingServiceError) as exc_info:
        await _client(session).embed("anything")
    assert exc_info.value.status_code == 503
    assert "500" in exc_info.value.message


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()])
async def test_transport_failures_map_to_service_error(error):
    session = FakeSession(error=error)
    with pytest.raises(EmbeddingServiceError):
        await _client(session).embed("anything")


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"data": []}, {"unexpected": True}, {"data": [{"embedding": []}]}, "<html>"])
async def test_malformed_body_maps_to_service_error(body):
    session = FakeSession(FakeResponse(200, body))
    with pytest.raises(EmbeddingServiceError) as exc_info:
        await _client(session).embed("anything")
    assert exc_info.value.code == "EMBEDDING_SERVICE_ERROR"


@pytest.mark.asyncio
async def test_close_leaves_injected_session_open():
    session = FakeSession()
    await _client(session).close()
    assert session.closed is False
