"""Tests for the Ollama text generation client."""

import json

import httpx
import openai
import pytest
from tenacity import wait_none

from deckassist.backends.text import TextBackend, classify_openai_error, parse_outline
from deckassist.errors.exceptions import BackendError, ServiceUnavailableError
from deckassist.types import PresentationRequest


def _mock_response(status_code: int) -> httpx.Response:
    """Create a minimal httpx.Response for constructing OpenAI exceptions."""
    request = httpx.Request("POST", "http://localhost:11434/v1/chat/completions")
    return httpx.Response(status_code=status_code, request=request)


def _completion(content: str) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "llama3",
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": content},
            "finish_reason": "stop",
        }],
    }


class FakeOllama:
    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/v1/models":
            return httpx.Response(200, json={"object": "list", "data": [
                {"id": "llama3", "object": "model", "created": 0, "owned_by": "library"},
            ]})
        return self.responses.pop(0)


@pytest.fixture
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(TextBackend._complete.retry, "wait", wait_none())


def _backend(server, **kwargs) -> TextBackend:
    client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    return TextBackend("http://ollama.test", http_client=client, **kwargs)


class TestClassifyOpenAIError:
    def test_timeout(self):
        request = httpx.Request("POST", "http://localhost:11434/v1/chat/completions")
        err = classify_openai_error(openai.APITimeoutError(request=request))
        assert isinstance(err, ServiceUnavailableError)
        assert err.message == "AI request timed out"

    def test_connection_error(self):
        err = classify_openai_error(openai.APIConnectionError(request=None))
        assert isinstance(err, ServiceUnavailableError)

    def test_status_error(self):
        err = classify_openai_error(
            openai.NotFoundError(
                message="model not found", response=_mock_response(404), body=None,
            )
        )
        assert isinstance(err, BackendError)
        assert err.status_code == 404
        assert "model not found" in err.message


class TestGenerate:
    async def test_generate(self):
        server = FakeOllama([httpx.Response(200, json=_completion("Three key points"))])
        backend = _backend(server)
        try:
            text = await backend.generate("Summarize Q3", temperature=0.2)
        finally:
            await backend.close()
        assert text == "Three key points"
        body = json.loads(server.requests[0].content)
        assert body["model"] == "llama3"
        assert body["temperature"] == 0.2
        assert body["messages"] == [{"role": "user", "content": "Summarize Q3"}]

    async def test_retries_server_errors(self, no_retry_wait):
        server = FakeOllama([
            httpx.Response(500, json={"error": {"message": "busy"}}),
            httpx.Response(200, json=_completion("ok")),
        ])
        backend = _backend(server)
        try:
            assert await backend.generate("hi") == "ok"
        finally:
            await backend.close()
        assert len(server.requests) == 2

    async def test_gives_up_after_three_attempts(self, no_retry_wait):
        server = FakeOllama([
            httpx.Response(500, json={"error": {"message": "busy"}}) for _ in range(3)
        ])
        backend = _backend(server)
        with pytest.raises(BackendError) as exc_info:
            await backend.generate("hi")
        await backend.close()
        assert exc_info.value.status_code == 500
        assert len(server.requests) == 3

    async def test_client_error_not_retried(self, no_retry_wait):
        server = FakeOllama([httpx.Response(404, json={"error": {"message": "no model"}})])
        backend = _backend(server)
        with pytest.raises(BackendError):
            await backend.generate("hi", model="missing")
        await backend.close()
        assert len(server.requests) == 1


class TestGenerateStream:
    async def test_yields_chunks(self):
        def chunk(content):
            return json.dumps({
                "id": "c", "object": "chat.completion.chunk", "created": 0, "model": "llama3",
                "choices": [{"index": 0, "delta": {"content": content}, "finish_reason": None}],
            })

        body = "".join(f"data: {chunk(c)}\n\n" for c in ["Hel", "lo"]) + "data: [DONE]\n\n"
        server = FakeOllama([
            httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})
        ])
        backend = _backend(server)
        try:
            parts = [part async for part in backend.generate_stream("hi")]
        finally:
            await backend.close()
        assert parts == ["Hel", "lo"]
        assert json.loads(server.requests[0].content)["stream"] is True


class TestGenerateCached:
    async def test_cached_by_prompt_and_model(self, cache_service):
        server = FakeOllama([
            httpx.Response(200, json=_completion("first")),
            httpx.Response(200, json=_completion("other model")),
        ])
        backend = _backend(server, cache=cache_service)
        try:
            assert await backend.generate_cached("hi") == "first"
            assert await backend.generate_cached("hi") == "first"
            assert await backend.generate_cached("hi", model="mistral") == "other model"
        finally:
            await backend.close()
        assert len(server.requests) == 2

    async def test_without_cache(self):
        server = FakeOllama([httpx.Response(200, json=_completion("x"))])
        backend = _backend(server)
        try:
            assert await backend.generate_cached("hi") == "x"
        finally:
            await backend.close()


class TestModels:
    async def test_health_and_models(self):
        backend = _backend(FakeOllama())
        try:
            assert await backend.check_health() is True
            assert await backend.list_models() == ["llama3"]
        finally:
            await backend.close()

    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        backend = _backend(handler)
        try:
            assert await backend.check_health() is False
            assert await backend.list_models() == []
        finally:
            await backend.close()


OUTLINE = json.dumps({
    "title": "Quarterly Review",
    "slides": [
        {"title": "Revenue", "content": ["Up 12%", "New markets"], "notes": "Lead with growth"},
        {"title": "Next steps", "content": ["Hire", "Ship v2"]},
    ],
})


class TestParseOutline:
    def test_fenced_json(self):
        outline = parse_outline(f"```json\n{OUTLINE}\n```")
        assert outline.title == "Quarterly Review"
        assert [s.title for s in outline.slides] == ["Revenue", "Next steps"]

    def test_text_content_split_into_bullets(self):
        raw = json.dumps({"title": "T", "slides": [{"title": "S", "content": "one\ntwo\n"}]})
        assert parse_outline(raw).slides[0].content == ["one", "two"]

    @pytest.mark.parametrize("raw", ["This is not valid JSON", "[]", '{"title": "No slides"}'])
    def test_unusable(self, raw):
        assert parse_outline(raw) is None


class TestGeneratePresentation:
    async def test_outline(self):
        server = FakeOllama([httpx.Response(200, json=_completion(OUTLINE))])
        backend = _backend(server)
        try:
            result = await backend.generate_presentation(
                PresentationRequest(prompt="Q3 results", slide_count=2, language="es")
            )
        finally:
            await backend.close()
        assert result.status == "success"
        assert result.presentation_id
        assert result.title == "Quarterly Review"
        assert len(result.slides) == 2
        assert result.slides[0].notes == "Lead with growth"
        prompt = json.loads(server.requests[0].content)["messages"][0]["content"]
        assert "Q3 results" in prompt
        assert "exactly 2 slides, written in es" in prompt

    async def test_truncates_to_slide_count(self):
        server = FakeOllama([httpx.Response(200, json=_completion(OUTLINE))])
        backend = _backend(server)
        try:
            result = await backend.generate_presentation(
                PresentationRequest(prompt="Q3", slide_count=1)
            )
        finally:
            await backend.close()
        assert [s.title for s in result.slides] == ["Revenue"]

    async def test_malformed_reply_gives_error_slide(self):
        server = FakeOllama([httpx.Response(200, json=_completion("This is not valid JSON"))])
        backend = _backend(server)
        try:
            result = await backend.generate_presentation(PresentationRequest(prompt="Q3"))
        finally:
            await backend.close()
        assert result.status == "success"
        assert len(result.slides) == 1
        assert "Error" in result.slides[0].content[0]

    async def test_backend_failure_gives_failed_result(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        backend = _backend(handler)
        try:
            result = await backend.generate_presentation(PresentationRequest(prompt="Q3"))
        finally:
            await backend.close()
        assert result.status == "failed"
        assert result.error
        assert result.slides == []

    async def test_outline_cached_but_malformed_reply_is_not(self, cache_service):
        server = FakeOllama([
            httpx.Response(200, json=_completion("not json")),
            httpx.Response(200, json=_completion(OUTLINE)),
        ])
        backend = _backend(server, cache=cache_service)
        request = PresentationRequest(prompt="Q3", slide_count=2)
        try:
            first = await backend.generate_presentation(request)
            second = await backend.generate_presentation(request)
            third = await backend.generate_presentation(request)
        finally:
            await backend.close()
        assert first.slides[0].title == "Error"
        assert second.title == third.title == "Quarterly Review"
        assert second.presentation_id != third.presentation_id
        assert len(server.requests) == 2

    def test_slide_count_bounds(self):
        with pytest.raises(ValueError):
            PresentationRequest(prompt="x", slide_count=0)
        with pytest.raises(ValueError):
            PresentationRequest(prompt="x", slide_count=51)
