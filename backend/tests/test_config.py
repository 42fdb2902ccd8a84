"""
Pixdrop Backend — Settings and Wiring Tests
============================================
"""

import pydantic
import pytest

from pixdrop.config import Settings
from pixdrop.dependencies import build_image_service


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("BACKEND_API_KEY", "DATA_ROOT", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        config = _settings()

        assert config.backend_api_key == ""
        assert config.allow_empty_api_key is False
        assert config.data_root == "./data"
        assert (config.max_long_side, config.max_short_side) == (1280, 720)
        assert config.backend_port == 5800
        assert config.log_level == "INFO"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("BACKEND_API_KEY", "from-env")
        monkeypatch.setenv("ALLOW_EMPTY_API_KEY", "true")

        config = _settings()

        assert config.backend_api_key == "from-env"
        assert config.allow_empty_api_key is True

    def test_log_level_normalized(self):
        assert _settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(pydantic.ValidationError):
            _settings(log_level="chatty")

    def test_short_side_cannot_exceed_long_side(self):
        with pytest.raises(pydantic.ValidationError):
            _settings(max_long_side=600, max_short_side=800)

    def test_cors_origins_list(self):
        config = _settings(cors_origins="http://a.test, http://b.test,")

        assert config.cors_origins_list == ["http://a.test", "http://b.test"]


class TestBuildImageService:
    def test_settings_flow_into_services(self, tmp_path):
        config = _settings(
            backend_api_key="k",
            data_root=str(tmp_path / "d"),
            max_long_side=1000,
            max_short_side=500,
            jpeg_quality=90,
            max_upload_bytes=4096,
        )

        service = build_image_service(config)

        assert service.store.data_root == tmp_path / "d"
        assert service.authorizer.is_allowed("k")
        assert (service.normalizer.max_long, service.normalizer.max_short) == (1000, 500)
        assert service.normalizer.jpeg_quality == 90
        assert service.max_upload_bytes == 4096

    def test_empty_key_locks_service(self, tmp_path):
        service = build_image_service(_settings(backend_api_key="", data_root=str(tmp_path)))

        assert service.authorizer.locked

    def test_empty_key_opt_in(self, tmp_path):
        config = _settings(backend_api_key="", allow_empty_api_key=True, data_root=str(tmp_path))

        assert build_image_service(config).authorizer.is_allowed("")
