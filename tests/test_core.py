"""Tests for the DeckAssist service facade."""

import base64

import httpx
import pytest

from deckassist.config.settings import Settings
from deckassist.core import DeckAssist
from deckassist.errors.exceptions import ConfigurationError
from deckassist.types import CacheType, JobStatus


class FakeBackends:
    """One MockTransport handler serving every backend host."""

    def __init__(self, png: bytes):
        self.png = png
        self.up = True
        self.sd_status = 200
        self.calls: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        host, path = request.url.host, request.url.path
        self.calls.append(f"{host}{path}")
        if not self.up:
            raise httpx.ConnectError("refused", request=request)
        if host == "sd.test":
            if path == "/sdapi/v1/sd-models":
                return httpx.Response(200, json=[])
            if self.sd_status != 200:
                return httpx.Response(self.sd_status, json={"error": "sampler crashed"})
            return httpx.Response(200, json={"images": [base64.b64encode(self.png).decode()]})
        if host == "ollama.test":
            if path == "/v1/models":
                return httpx.Response(200, json={"object": "list", "data": []})
            return httpx.Response(200, json={
                "id": "c", "object": "chat.completion", "created": 0, "model": "llama3",
                "choices": [{
                    "index": 0,
                    "message": {"role": "assistant", "content": "Bullet one"},
                    "finish_reason": "stop",
                }],
            })
        if host == "lt.test":
            if path == "/languages":
                return httpx.Response(200, json=[{"code": "en", "name": "English"}])
            if path == "/detect":
                return httpx.Response(200, json=[{"language": "en", "confidence": 90}])
            return httpx.Response(200, json={"translatedText": "Hola"})
        if host == "www.googleapis.com":
            return httpx.Response(200, json={"items": [{"link": "https://img.test/1.jpg"}]})
        return httpx.Response(404)

    def count(self, fragment: str) -> int:
        return sum(fragment in call for call in self.calls)


@pytest.fixture
def backends(make_png):
    return FakeBackends(make_png(64, 64))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        sd_webui_url="http://sd.test",
        ollama_url="http://ollama.test",
        libretranslate_url="http://lt.test",
        google_api_key="key",
        google_search_engine_id="cx",
        cache_db_path=tmp_path / "cache.db",
        images_dir=tmp_path / "images",
    )


@pytest.fixture
async def app(settings, backends):
    async with DeckAssist(settings, transport=httpx.MockTransport(backends)) as app:
        yield app


class TestGeneration:
    async def test_job_completes_with_saved_file(self, app, tmp_path):
        job_id = app.submit_generation("a calm lake")
        assert app.get_job(job_id).status == JobStatus.PENDING

        await app.jobs.join()
        job = app.get_job(job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.result.startswith("sd_")
        assert (tmp_path / "images" / job.result).exists()
        assert job.to_public()["result"] == job.result

    async def test_backend_failure_marks_job_failed(self, app, backends):
        backends.sd_status = 500
        job_id = app.submit_generation("a calm lake")
        await app.jobs.join()
        job = app.get_job(job_id)
        assert job.status == JobStatus.FAILED
        assert "sampler crashed" in job.error

    async def test_unknown_job(self, app):
        assert app.get_job("missing") is None


class TestSearch:
    async def test_search_is_cached(self, app, backends):
        first = await app.search_images("lake", count=3)
        second = await app.search_images("lake", count=3)
        assert first == second
        assert first[0].url == "https://img.test/1.jpg"
        assert backends.count("customsearch") == 1
        assert app.cache.stats().by_type == {CacheType.IMAGE.value: 1}

    async def test_search_without_credentials(self, tmp_path, backends):
        settings = Settings(cache_db_path=tmp_path / "c.db", images_dir=tmp_path / "i")
        async with DeckAssist(settings, transport=httpx.MockTransport(backends)) as app:
            with pytest.raises(ConfigurationError):
                await app.search_images("lake")
        assert backends.calls == []


class TestTextAndTranslation:
    async def test_generate_text_cached(self, app, backends):
        assert await app.generate_text("Summarize") == "Bullet one"
        assert await app.generate_text("Summarize") == "Bullet one"
        assert backends.count("/v1/chat/completions") == 1

    async def test_generate_presentation_from_prompt(self, app, backends):
        result = await app.generate_presentation("Q3 results", slide_count=2)
        assert result.status == "success"
        assert result.slides[0].title == "Error"
        backends.up = False
        failed = await app.generate_presentation("Q4 results")
        assert failed.status == "failed"
        assert failed.slides == []

    async def test_translate(self, app):
        assert await app.translate("Hello", "es", "en") == "Hola"

    async def test_translate_identity_makes_no_calls(self, app, backends):
        assert await app.translate("Hello world", "en", "en") == "Hello world"
        assert await app.translate("", "es", "en") == ""
        assert backends.calls == []

    async def test_detect_and_languages(self, app):
        assert (await app.detect_language("Hello")).language == "en"
        assert [lang.code for lang in await app.languages()] == ["en"]


class TestMaintenance:
    async def test_health_all_up(self, app):
        assert await app.health() == {
            "image_generation": True,
            "text_generation": True,
            "image_search_configured": True,
            "translation": True,
        }

    async def test_health_all_down(self, app, backends):
        backends.up = False
        health = await app.health()
        assert health["image_generation"] is False
        assert health["text_generation"] is False
        assert health["translation"] is False

    async def test_sweep_cache(self, app):
        app.cache.store.set("k", "v", CacheType.OTHER, ttl=-1)
        assert app.sweep_cache() == 1

    async def test_process_image(self, app, make_png):
        source = app.pipeline.store.save(make_png(), prefix="sd", extension="png")
        assert app.process_image(source).startswith("processed_")
        assert app.compress_if_large(source) == source
        assert app.remove_background(source).startswith("nobg_")
