from types import SimpleNamespace

import pytest

from conftest import FakeEmbeddings
from kbvault.api.exceptions import EmbeddingFailure
from kbvault.services.embedding_service import EmbeddingService, validate_embedding


def _service(embeddings, **kwargs):
    return EmbeddingService(dimension=4, client=SimpleNamespace(embeddings=embeddings), **kwargs)


async def test_generate_caps_input_and_requests_dimension():
    embeddings = FakeEmbeddings()
    vector = await _service(embeddings, max_chars=10).generate("x" * 50)

    assert vector == [0.25] * 4
    assert embeddings.calls[0]["input"] == "x" * 10
    assert embeddings.calls[0]["dimensions"] == 4


async def test_embed_returns_empty_list_on_failure():
    assert await _service(FakeEmbeddings(fail=True)).embed("some text") == []


async def test_embed_without_client_returns_empty_list():
    service = EmbeddingService(api_key=None)
    assert service.available is False
    assert await service.embed("some text") == []


async def test_generate_rejects_blank_text():
    with pytest.raises(EmbeddingFailure, match="No text"):
        await _service(FakeEmbeddings()).generate("   ")


def test_validate_embedding_rejects_wrong_dimension():
    with pytest.raises(EmbeddingFailure, match="expected 3"):
        validate_embedding([0.1, 0.2], 3)


def test_validate_embedding_rejects_non_finite_values():
    with pytest.raises(EmbeddingFailure, match="non-finite"):
        validate_embedding([0.1, float("nan"), 0.3], 3)


async def test_empty_response_data_is_an_embedding_failure():
    service = _service(FakeEmbeddings(data=[]))

    with pytest.raises(EmbeddingFailure, match="Malformed embedding response"):
        await service.generate("some text")
    assert await service.embed("some text") == []


async def test_non_numeric_vector_returns_empty_list():
    embeddings = FakeEmbeddings(data=[SimpleNamespace(embedding=["a", "b", "c", "d"])])
    assert await _service(embeddings).embed("some text") == []
