import pytest
from pydantic import ValidationError

from openapi_craft.config import DEFAULT_CONCURRENCY, GenerationOptions


class TestGenerationOptions:
    def test_defaults(self):
        options = GenerationOptions()
        assert options.generate_client is True
        assert options.generate_server is False
        assert options.strict_validation is False
        assert options.concurrency == DEFAULT_CONCURRENCY

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValidationError):
            GenerationOptions(concurrency=0)


class TestFromEnv:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAPI_CRAFT_CONCURRENCY", "4")
        monkeypatch.setenv("OPENAPI_CRAFT_STRICT", "true")
        monkeypatch.setenv("OPENAPI_CRAFT_SERVER", "1")
        options = GenerationOptions.from_env()
        assert options.concurrency == 4
        assert options.strict_validation is True
        assert options.generate_server is True

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("OPENAPI_CRAFT_CONCURRENCY", "4")
        options = GenerationOptions.from_env(concurrency=2, generate_client=False)
        assert options.concurrency == 2
        assert options.generate_client is False

    def test_none_overrides_ignored(self, monkeypatch):
        monkeypatch.setenv("OPENAPI_CRAFT_SERVER", "yes")
        assert GenerationOptions.from_env(generate_server=None).generate_server is True

    @pytest.mark.parametrize("value", ["abc", "0", "-3", ""])
    def test_bad_concurrency_falls_back(self, monkeypatch, value):
        monkeypatch.setenv("OPENAPI_CRAFT_CONCURRENCY", value)
        assert GenerationOptions.from_env().concurrency == DEFAULT_CONCURRENCY

    def test_unset(self, monkeypatch):
        for name in ("OPENAPI_CRAFT_CONCURRENCY", "OPENAPI_CRAFT_STRICT", "OPENAPI_CRAFT_SERVER"):
            monkeypatch.delenv(name, raising=False)
        assert GenerationOptions.from_env() == GenerationOptions()
