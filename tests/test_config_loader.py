"""Tests for config_loader.py."""

import pytest

from config_loader import ConfigLoader

MINIMAL = """
upstream:
  base_url: "https://models.example.com/v1/"
client_authentication:
  allowed_keys: ["k1", "k2"]
"""


class TestConfigLoader:
    def test_minimal_config_uses_defaults(self, config_file):
        loader = ConfigLoader(config_file(MINIMAL))
        config = loader.load_config()

        assert config.server.port == 8000
        assert config.upstream.name == "local"
        assert config.upstream.base_url == "https://models.example.com/v1"
        assert config.features.log_level == "INFO"
        assert config.features.stop_labels == ["User:", "Assistant:", "System:"]
        assert loader.get_allowed_client_keys() == {"k1", "k2"}

    def test_generation_settings(self, config_file):
        loader = ConfigLoader(config_file(MINIMAL + """
generation:
  max_tokens: 32
  temperature: 0.7
  top_p: 0.9
  stop_sequences: ["END"]
features:
  log_level: "debug"
"""))
        settings = loader.get_generation_settings()

        assert settings.max_tokens == 32
        assert settings.temperature == 0.7
        assert settings.top_p == 0.9
        assert settings.stop_sequences == frozenset({"END"})
        assert settings.auto_invoke is True
        assert loader.get_log_level() == "DEBUG"

    def test_function_calling_flag_disables_auto_invoke(self, config_file):
        loader = ConfigLoader(config_file(MINIMAL + """
features:
  enable_function_calling: false
"""))
        assert loader.get_generation_settings().auto_invoke is False

    def test_reload_picks_up_changes(self, config_file):
        path = config_file(MINIMAL)
        loader = ConfigLoader(path)
        assert loader.config.upstream.model == ""

        config_file(MINIMAL.replace('upstream:\n', 'upstream:\n  model: "tiny"\n'))
        assert loader.reload_config().upstream.model == "tiny"

    def test_env_var_selects_path(self, config_file, monkeypatch):
        path = config_file(MINIMAL)
        monkeypatch.setenv("TEXTCALL_CONFIG", path)
        assert ConfigLoader().config_path == path

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader(str(tmp_path / "absent.yaml")).load_config()

    @pytest.mark.parametrize("content", [
        "",
        "upstream: [unclosed",
        MINIMAL.replace("https://", "ftp://"),
        MINIMAL.replace('["k1", "k2"]', "[]"),
        MINIMAL + "features:\n  log_level: LOUD\n",
        MINIMAL + "features:\n  prompt_template: 'no placeholder'\n",
        MINIMAL + "generation:\n  top_p: 1.5\n",
        "client_authentication:\n  allowed_keys: ['k']\n",
    ])
    def test_invalid_config_raises_value_error(self, config_file, content):
        with pytest.raises(ValueError):
            ConfigLoader(config_file(content)).load_config()
