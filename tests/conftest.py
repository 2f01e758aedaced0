"""Shared pytest fixtures."""

import os
import tempfile

import pytest

# main.py loads its configuration at import time; point it at a test file first.
_TEST_CONFIG = """
upstream:
  name: "test-backend"
  base_url: "http://upstream.test/v1/"
client_authentication:
  allowed_keys:
    - "test-key"
generation:
  max_tokens: 64
features:
  log_level: "DEBUG"
"""

_config_dir = tempfile.mkdtemp(prefix="textcall-tests-")
_config_path = os.path.join(_config_dir, "config.yaml")
with open(_config_path, "w", encoding="utf-8") as f:
    f.write(_TEST_CONFIG)
os.environ["TEXTCALL_CONFIG"] = _config_path


@pytest.fixture
def config_file(tmp_path):
    """Write a YAML config and return its path."""
    def _write(content: str) -> str:
        path = tmp_path / "config.yaml"
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def registry():
    from textcall_core.plugins import build_default_registry

    return build_default_registry()
