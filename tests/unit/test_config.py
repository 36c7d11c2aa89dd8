"""
Tests for prescient.config module.
"""

import textwrap

import pytest

import prescient
from prescient.config import (
    Configuration,
    LoggingConfig,
    canonical_name,
    configure,
    get_configuration,
    reset_configuration,
)
from prescient.exceptions import ConfigurationError
from prescient.providers import BaseProvider, OllamaProvider, OpenAIProvider, ProviderFactory
from tests.conftest import FakeProvider, backend_returning


class TestCanonicalName:

    @pytest.mark.parametrize("raw", [":openai", "OpenAI", " openai ", ":OPENAI"])
    def test_forms_collapse(self, raw):
        assert canonical_name(raw) == "openai"


class TestConfigurationDefaults:

    def test_policy_defaults(self, monkeypatch):
        for var in ("PRESCIENT_TIMEOUT", "PRESCIENT_RETRY_ATTEMPTS", "PRESCIENT_DEFAULT_PROVIDER"):
            monkeypatch.delenv(var, raising=False)

        config = Configuration()

        assert config.default_provider == "ollama"
        assert config.timeout == 30
        assert config.retry_attempts == 3
        assert config.retry_delay == 1.0
        assert config.fallback_providers == []
        assert config.providers == {}
        assert isinstance(config.logging, LoggingConfig)

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PRESCIENT_RETRY_ATTEMPTS", "5")
        monkeypatch.setenv("PRESCIENT_DEFAULT_PROVIDER", "OpenAI")

        config = Configuration()

        assert config.retry_attempts == 5
        assert config.default_provider == "openai"

    def test_fallback_names_canonical(self):
        config = Configuration(fallback_providers=[":Backup", "other"])
        assert config.fallback_providers == ["backup", "other"]


class TestProviderRegistry:

    def test_add_and_construct(self, config, ollama_options):
        config.add_provider(":Local", "ollama", **ollama_options)

        assert config.has_provider("local")
        provider = config.provider(":local")
        assert isinstance(provider, OllamaProvider)
        assert provider.options["url"] == "http://localhost:11434"

    def test_fresh_instance_every_lookup(self, config, ollama_options):
        config.add_provider("local", "ollama", **ollama_options)
        assert config.provider("local") is not config.provider("local")

    def test_registered_options_read_only(self, config, ollama_options):
        options = dict(ollama_options)
        config.add_provider("local", "ollama", **options)
        registration = config.get_registration("local")

        with pytest.raises(TypeError):
            registration.options["url"] = "http://elsewhere:11434"
        options["url"] = "http://elsewhere:11434"

        assert registration.options["url"] == "http://localhost:11434"
        assert config.provider("local").options["url"] == "http://localhost:11434"

    def test_global_timeout_injected(self, config, ollama_options):
        config.timeout = 12
        config.add_provider("local", "ollama", **ollama_options)
        config.add_provider("slow", "ollama", timeout=99, **ollama_options)

        assert config.provider("local").timeout == 12
        assert config.provider("slow").timeout == 99

    def test_unknown_name(self, config):
        assert config.provider("nope") is None
        with pytest.raises(ConfigurationError):
            config.get_registration("nope")

    def test_overwrite(self, config, ollama_options, openai_options):
        config.add_provider("main", "ollama", **ollama_options)
        config.add_provider("main", "openai", **openai_options)

        assert isinstance(config.provider("main"), OpenAIProvider)
        assert list(config.providers) == ["main"]

    def test_unknown_backend_rejected(self, config):
        with pytest.raises(ConfigurationError, match="Unsupported provider type"):
            config.add_provider("x", "not-a-backend")

    def test_empty_name_rejected(self, config):
        with pytest.raises(ConfigurationError):
            config.add_provider(":", "ollama")

    def test_factory_callable_backend(self, config):
        config.add_provider("fake", FakeProvider, label="custom")

        provider = config.provider("fake")

        assert isinstance(provider, FakeProvider)
        assert provider.label == "custom"
        assert config.providers["fake"].backend_name == "FakeProvider"

    def test_missing_options_raise_on_construction(self, config):
        config.add_provider("openai", "openai", embedding_model="e", chat_model="c")
        with pytest.raises(ConfigurationError, match="api_key"):
            config.provider("openai")

    def test_remove_provider(self, config):
        config.add_provider("fake", FakeProvider)
        config.remove_provider(":FAKE")
        assert not config.has_provider("fake")

    def test_registration_is_frozen(self, config):
        registration = config.add_provider("fake", FakeProvider)
        with pytest.raises(Exception):
            registration.name = "other"

    @pytest.mark.asyncio
    async def test_available_providers(self, config):
        up = FakeProvider(label="up")
        down = FakeProvider(label="down", healthy=False)
        config.add_provider("up", backend_returning(up))
        config.add_provider("down", backend_returning(down))
        config.add_provider("broken", "openai")  # no api_key

        assert await config.available_providers() == ["up"]
        assert up.closed and down.closed


class TestDefaultProviders:

    def test_defaults_from_environment(self, monkeypatch):
        monkeypatch.setenv("OLLAMA_URL", "http://ollama:11434")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.delenv("OPENAI_CHAT_MODEL", raising=False)

        config = Configuration().add_default_providers()

        assert list(config.providers) == ["ollama", "anthropic", "openai", "huggingface"]
        assert config.providers["ollama"].options["url"] == "http://ollama:11434"
        assert config.providers["openai"].options["api_key"] == "sk-env"
        assert config.providers["openai"].options["chat_model"] == "gpt-3.5-turbo"

    def test_get_configuration_is_lazy_with_defaults(self, monkeypatch):
        import prescient.config as prescient_config
        monkeypatch.setattr(prescient_config, "_configuration", None)

        config = get_configuration()

        assert config is get_configuration()
        assert config.has_provider("ollama")


class TestGlobalConfiguration:

    def test_configure_callback(self):
        config = configure(lambda c: c.add_provider("fake", FakeProvider))

        assert config is get_configuration()
        assert config.has_provider("fake")

    def test_reset_is_empty(self):
        configure(lambda c: c.add_provider("fake", FakeProvider))

        fresh = reset_configuration()

        assert fresh is get_configuration()
        assert fresh.providers == {}

    def test_reset_with_explicit_config(self, config):
        assert reset_configuration(config) is config
        assert prescient.get_configuration() is config


class TestFromYaml:

    def test_load(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_OPENAI_KEY", "sk-from-env")
        path = tmp_path / "prescient.yaml"
        path.write_text(textwrap.dedent("""
            default_provider: openai
            retry_attempts: 2
            fallback_providers: [local]
            logging:
              level: DEBUG
            providers:
              openai:
                type: openai
                api_key: ${TEST_OPENAI_KEY}
                embedding_model: text-embedding-3-small
                chat_model: gpt-4
              local:
                type: ollama
                url: http://localhost:11434
                embedding_model: nomic-embed-text
                chat_model: llama3.1:8b
                context_configs:
                  document:
                    fields: [title, content]
        """))

        config = Configuration.from_yaml(path)

        assert config.default_provider == "openai"
        assert config.retry_attempts == 2
        assert config.fallback_providers == ["local"]
        assert config.logging.level == "DEBUG"
        assert config.providers["openai"].options["api_key"] == "sk-from-env"
        assert "type" not in config.providers["openai"].options
        assert isinstance(config.provider("local"), OllamaProvider)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            Configuration.from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("providers: [unclosed")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            Configuration.from_yaml(path)

    def test_provider_without_type(self, tmp_path):
        path = tmp_path / "notype.yaml"
        path.write_text("providers:\n  local:\n    url: http://x\n")
        with pytest.raises(ConfigurationError, match="has no type"):
            Configuration.from_yaml(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("retry_attempts: many\n")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            Configuration.from_yaml(path)


class TestProviderFactory:

    def test_supported_backends(self):
        assert ProviderFactory.get_supported_backends()[:4] == [
            "ollama", "openai", "anthropic", "huggingface",
        ]

    def test_register_backend(self, config):
        ProviderFactory.register_backend("Fake", FakeProvider)
        try:
            config.add_provider("mine", "fake")
            assert isinstance(config.provider("mine"), FakeProvider)
        finally:
            ProviderFactory.unregister_backend("fake")

    def test_register_rejects_non_provider(self):
        with pytest.raises(ConfigurationError, match="must inherit from BaseProvider"):
            ProviderFactory.register_backend("bad", dict)

    def test_factory_must_return_provider(self):
        with pytest.raises(ConfigurationError, match="expected a BaseProvider"):
            ProviderFactory.create_provider(lambda **options: object())

    def test_factory_errors_wrapped(self):
        def explode(**options):
            raise RuntimeError("no dice")

        with pytest.raises(ConfigurationError, match="no dice"):
            ProviderFactory.create_provider(explode)

    def test_base_provider_is_abstract(self):
        assert getattr(BaseProvider, "__abstractmethods__")
