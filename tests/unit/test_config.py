"""
Unit tests for settings resolution.

Tests livetex.config.load_settings layering.
"""

import pytest
from omegaconf.errors import ValidationError

from livetex.config import ENV_VARIABLES, LiveTexSettings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from the developer's .env and shell."""
    for name in list(ENV_VARIABLES) + ["LIVETEX_CONFIG"]:
        monkeypatch.delenv(name, raising=False)


@pytest.mark.unit
def test_defaults():
    settings = load_settings()

    assert isinstance(settings, LiveTexSettings)
    assert settings.latex_compiler == "pdflatex"
    assert settings.debounce_ms == 750
    assert settings.debounce_s == pytest.approx(0.75)
    assert settings.show_superseded_results is True


@pytest.mark.unit
def test_yaml_overrides_defaults(tmp_path):
    config = tmp_path / "livetex.yaml"
    config.write_text("debounce_ms: 300\nnum_passes: 2\n")

    settings = load_settings(config)

    assert settings.debounce_ms == 300
    assert settings.num_passes == 2
    assert settings.latex_compiler == "pdflatex"


@pytest.mark.unit
def test_config_path_from_environment(tmp_path, monkeypatch):
    config = tmp_path / "livetex.yaml"
    config.write_text("api_port: 9100\n")
    monkeypatch.setenv("LIVETEX_CONFIG", str(config))

    assert load_settings().api_port == 9100


@pytest.mark.unit
def test_environment_overrides_yaml(tmp_path, monkeypatch):
    config = tmp_path / "livetex.yaml"
    config.write_text("debounce_ms: 300\n")
    monkeypatch.setenv("LIVETEX_DEBOUNCE_MS", "120")
    monkeypatch.setenv("LATEX_COMPILER", "xelatex")
    monkeypatch.setenv("LIVETEX_SHOW_SUPERSEDED", "false")

    settings = load_settings(config)

    assert settings.debounce_ms == 120
    assert settings.latex_compiler == "xelatex"
    assert settings.show_superseded_results is False


@pytest.mark.unit
def test_timeout_can_be_disabled_from_environment(monkeypatch):
    monkeypatch.setenv("LIVETEX_COMPILE_TIMEOUT_S", "none")

    assert load_settings().compile_timeout_s is None


@pytest.mark.unit
def test_explicit_overrides_win(monkeypatch):
    monkeypatch.setenv("LIVETEX_DEBOUNCE_MS", "120")

    assert load_settings(overrides={"debounce_ms": 50}).debounce_ms == 50


@pytest.mark.unit
def test_missing_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "nope.yaml")


@pytest.mark.unit
def test_bad_type_raises(monkeypatch):
    monkeypatch.setenv("LIVETEX_API_PORT", "not-a-port")

    with pytest.raises(ValidationError):
        load_settings()
