"""
Module: tests.test_config
Purpose: Defaults, YAML overrides and environment overrides
"""

from sd_showcase.config import Config


def test_defaults(monkeypatch):
    for name in ("SD_API_URL", "SD_API_TIMEOUT", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    config = Config()

    assert config.backend_url("samplers") == "http://127.0.0.1:7860/sdapi/v1/samplers"
    assert config.timeout == 120.0
    assert config.backend["fallback_sampler"] == "Euler a"
    assert config.img2img["denoising_strength"] == 0.75
    assert config.llm["api_key"] is None


def test_yaml_overrides_merge_into_sections(monkeypatch, tmp_path):
    monkeypatch.delenv("SD_API_URL", raising=False)
    config_file = tmp_path / "local.yaml"
    config_file.write_text(
        "backend:\n"
        "  base_url: http://gpu-box:7860/sdapi/v1/\n"
        "img2img:\n"
        "  denoising_strength: 0.5\n"
    )

    config = Config(config_file)

    assert config.backend_url("/txt2img") == "http://gpu-box:7860/sdapi/v1/txt2img"
    assert config.img2img["denoising_strength"] == 0.5
    # Keys absent from the file keep their defaults
    assert config.backend["default_sampler"] == "DPM++ 2M Karras"


def test_missing_config_file_is_ignored(tmp_path):
    config = Config(tmp_path / "absent.yaml")

    assert config.api["port"] == 8000


def test_environment_wins_over_file(monkeypatch, tmp_path):
    config_file = tmp_path / "local.yaml"
    config_file.write_text("backend:\n  base_url: http://from-file/sdapi/v1\n  timeout: 30\n")
    monkeypatch.setenv("SD_API_URL", "http://from-env/sdapi/v1")
    monkeypatch.setenv("SD_API_TIMEOUT", "45")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    config = Config(config_file)

    assert config.backend["base_url"] == "http://from-env/sdapi/v1"
    assert config.timeout == 45.0
    assert config.llm["api_key"] == "sk-test"
