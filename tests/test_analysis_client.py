"""Text-generation client error mapping tests."""

from types import SimpleNamespace

import httpx
import openai
import pytest

from tradermind.errors.exceptions import AnalysisTimeoutError
from tradermind.services.analysis import AnalysisClient, AnalysisServiceError

COMPLETIONS_URL = "http://llm.test/v1/chat/completions"


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
async def analysis_client():
    client = AnalysisClient(
        api_key="sk-test", model="gpt-3.5-turbo", base_url="http://llm.test/v1",
        temperature=0.3, max_tokens=800,
    )
    yield client
    await client.close()


def _script(monkeypatch, client: AnalysisClient, outcome):
    """Replace the SDK call with one that returns or raises ``outcome``; record its kwargs."""
    calls = []

    async def create(**kwargs):
        calls.append(kwargs)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    monkeypatch.setattr(client._client.chat.completions, "create", create)
    return calls


@pytest.mark.asyncio
async def test_complete_returns_text_and_sends_both_prompts(analysis_client, monkeypatch):
    calls = _script(monkeypatch, analysis_client, _completion("分析结果"))

    text = await analysis_client.complete("你是分析师", "请分析以下回答")

    assert text == "分析结果"
    assert calls == [
        {
            "model": "gpt-3.5-turbo",
            "messages": [
                {"role": "system", "content": "你是分析师"},
                {"role": "user", "content": "请分析以下回答"},
            ],
            "temperature": 0.3,
            "max_tokens": 800,
        }
    ]


@pytest.mark.asyncio
async def test_sdk_timeout_maps_to_analysis_timeout(analysis_client, monkeypatch):
    request = httpx.Request("POST", COMPLETIONS_URL)
    _script(monkeypatch, analysis_client, openai.APITimeoutError(request=request))

    with pytest.raises(AnalysisTimeoutError):
        await analysis_client.complete("system", "user")


@pytest.mark.asyncio
async def test_server_error_maps_to_retryable_service_error(analysis_client, monkeypatch):
    request = httpx.Request("POST", COMPLETIONS_URL)
    response = httpx.Response(500, request=request)
    _script(monkeypatch, analysis_client, openai.InternalServerError("upstream boom", response=response, body=None))

    with pytest.raises(AnalysisServiceError) as exc_info:
        await analysis_client.complete("system", "user")
    assert "InternalServerError" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, openai.InternalServerError)


@pytest.mark.asyncio
async def test_connection_error_maps_to_retryable_service_error(analysis_client, monkeypatch):
    request = httpx.Request("POST", COMPLETIONS_URL)
    _script(monkeypatch, analysis_client, openai.APIConnectionError(request=request))

    with pytest.raises(AnalysisServiceError):
        await analysis_client.complete("system", "user")


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [None, "", "   \n"])
async def test_empty_completion_is_a_service_error(analysis_client, monkeypatch, content):
    _script(monkeypatch, analysis_client, _completion(content))

    with pytest.raises(AnalysisServiceError, match="empty completion"):
        await analysis_client.complete("system", "user")


@pytest.mark.asyncio
async def test_completion_without_choices_is_a_service_error(analysis_client, monkeypatch):
    _script(monkeypatch, analysis_client, SimpleNamespace(choices=[]))

    with pytest.raises(AnalysisServiceError, match="empty completion"):
        await analysis_client.complete("system", "user")
