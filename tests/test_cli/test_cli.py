"""Tests for CLI commands."""

import functools

import httpx
import pytest
from click.testing import CliRunner

from deckassist import core
from deckassist.cache.store import ContentCache
from deckassist.cli import cli
from deckassist.types import CacheType


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def base_args(tmp_path):
    return ["--cache-db", str(tmp_path / "cache.db"), "--images-dir", str(tmp_path / "images")]


@pytest.fixture
def offline(monkeypatch):
    """Route every backend request through a handler the test provides."""
    def _install(handler):
        monkeypatch.setattr(
            core,
            "DeckAssist",
            functools.partial(core.DeckAssist, transport=httpx.MockTransport(handler)),
        )
    return _install


def _refuse(request):
    raise httpx.ConnectError("refused", request=request)


class TestCLIGroup:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "deckassist" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0

    @pytest.mark.parametrize(
        "command",
        [
            "health", "generate", "outline", "translate",
            "detect", "languages", "search", "image", "cache",
        ],
    )
    def test_subcommand_help(self, runner, command):
        result = runner.invoke(cli, [command, "--help"])
        assert result.exit_code == 0


class TestHealthCommand:
    def test_reports_unavailable(self, runner, base_args, offline):
        offline(_refuse)
        result = runner.invoke(cli, [*base_args, "health"])
        assert result.exit_code == 0
        assert "Backend Health" in result.output
        assert "unavailable" in result.output


class TestTranslateCommand:
    def test_requires_target(self, runner, base_args):
        result = runner.invoke(cli, [*base_args, "translate", "Hello"])
        assert result.exit_code != 0

    def test_same_language(self, runner, base_args, offline):
        offline(_refuse)
        result = runner.invoke(cli, [*base_args, "translate", "Hello", "--to", "en", "--from", "en"])
        assert result.exit_code == 0
        assert "Hello" in result.output

    def test_service_down_is_error(self, runner, base_args, offline):
        offline(_refuse)
        result = runner.invoke(cli, [*base_args, "translate", "Hello", "--to", "es", "--from", "en"])
        assert result.exit_code == 1


class TestOutlineCommand:
    def test_backend_down_is_error(self, runner, base_args, offline):
        offline(_refuse)
        result = runner.invoke(cli, [*base_args, "outline", "Q3 results", "--slides", "3"])
        assert result.exit_code == 1

    def test_slide_count_range(self, runner, base_args):
        result = runner.invoke(cli, [*base_args, "outline", "Q3 results", "--slides", "0"])
        assert result.exit_code != 0


class TestLanguagesCommand:
    def test_fallback_list(self, runner, base_args, offline):
        offline(_refuse)
        result = runner.invoke(cli, [*base_args, "languages"])
        assert result.exit_code == 0
        assert "Spanish" in result.output


class TestSearchCommand:
    def test_missing_credentials(self, runner, base_args, offline, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        monkeypatch.delenv("GOOGLE_SEARCH_ENGINE_ID", raising=False)
        offline(_refuse)
        result = runner.invoke(cli, [*base_args, "search", "lake"])
        assert result.exit_code == 1


class TestImageCommands:
    def test_process(self, runner, base_args, tmp_path, make_png):
        images = tmp_path / "images"
        images.mkdir()
        (images / "slide.png").write_bytes(make_png())
        result = runner.invoke(
            cli, [*base_args, "image", "process", "slide.png", "--width", "32", "--format", "webp"]
        )
        assert result.exit_code == 0
        assert "processed_" in result.output

    def test_compress_below_threshold(self, runner, base_args, tmp_path, make_png):
        images = tmp_path / "images"
        images.mkdir()
        (images / "slide.png").write_bytes(make_png())
        result = runner.invoke(cli, [*base_args, "image", "compress", "slide.png"])
        assert result.exit_code == 0
        assert "unchanged" in result.output

    def test_missing_file(self, runner, base_args):
        result = runner.invoke(cli, [*base_args, "image", "remove-bg", "missing.png"])
        assert result.exit_code == 1


class TestCacheCommands:
    def test_cache_help(self, runner):
        result = runner.invoke(cli, ["cache", "--help"])
        assert result.exit_code == 0
        assert "stats" in result.output
        assert "clear" in result.output
        assert "sweep" in result.output

    def test_stats(self, runner, base_args, tmp_path):
        store = ContentCache(db_path=tmp_path / "cache.db")
        store.set("k", "v", CacheType.AI)
        store.close()
        result = runner.invoke(cli, [*base_args, "cache", "stats"])
        assert result.exit_code == 0
        assert "Cache Statistics" in result.output

    def test_clear_by_type(self, runner, base_args, tmp_path):
        store = ContentCache(db_path=tmp_path / "cache.db")
        store.set("a", "1", CacheType.AI)
        store.set("b", "2", CacheType.IMAGE)
        store.close()

        result = runner.invoke(cli, [*base_args, "cache", "clear", "--type", "ai", "--yes"])
        assert result.exit_code == 0

        store = ContentCache(db_path=tmp_path / "cache.db")
        try:
            assert store.count_by_type() == {"image": 1}
        finally:
            store.close()

    def test_clear_requires_confirmation(self, runner, base_args):
        result = runner.invoke(cli, [*base_args, "cache", "clear"], input="n\n")
        assert result.exit_code != 0

    def test_sweep(self, runner, base_args, tmp_path):
        store = ContentCache(db_path=tmp_path / "cache.db")
        store.set("old", "v", CacheType.AI, ttl=-1)
        store.close()
        result = runner.invoke(cli, [*base_args, "cache", "sweep"])
        assert result.exit_code == 0
        assert "Removed 1" in result.output
