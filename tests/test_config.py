"""
Tests for configuration system.
"""

from pathlib import Path

import pytest
import yaml

from hls_publisher.config import (
    ConfigManager,
    EncodingConfig,
    PublisherConfig,
    RenditionTarget,
    StorageConfig,
)
from hls_publisher.utils import ConfigurationError


class TestPublisherConfig:
    """Test PublisherConfig model."""

    def test_create_default(self):
        config = PublisherConfig.create_default()

        assert [r.name for r in config.renditions] == ["480p", "720p"]
        assert config.renditions[0].size == "854x480"
        assert config.renditions[1].bitrate == "1500k"
        assert config.hls.segment_duration == 10
        assert config.hls.playlist_type == "vod"
        assert config.hls.manifest_name == "master.m3u8"
        assert config.storage.default_bucket_name == "cloud-video-store"
        assert config.manifest.url_template == "{rendition}/playlist.m3u8"

    def test_encoding_defaults(self):
        enc = EncodingConfig()
        assert enc.video_codec == "h264"
        assert enc.profile == "main"
        assert enc.crf == 20
        assert enc.gop_size == 48
        assert enc.audio_sample_rate == 48000
        assert enc.audio_bitrate == "128k"

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            PublisherConfig(hls={"segment_duraton": 6})

    def test_invalid_bitrate(self):
        with pytest.raises(ValueError, match="bitrate"):
            RenditionTarget(name="480p", width=854, height=480, bitrate="fast")

    def test_duplicate_rendition_names(self):
        with pytest.raises(ValueError, match="unique"):
            PublisherConfig(
                renditions=[
                    {"name": "480p", "width": 854, "height": 480, "bitrate": "800k"},
                    {"name": "480p", "width": 640, "height": 480, "bitrate": "600k"},
                ]
            )

    def test_invalid_sample_rate(self):
        with pytest.raises(ValueError):
            EncodingConfig(audio_sample_rate=12345)

    def test_has_credentials(self):
        assert not StorageConfig().has_credentials
        assert StorageConfig(key_id="id", application_key="key").has_credentials


class TestConfigManager:
    """Test ConfigManager."""

    def test_defaults_when_no_file(self, monkeypatch, tmp_path):
        monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_LOCATIONS", [tmp_path / "none.yaml"])
        manager = ConfigManager(environ={})

        config = manager.config

        assert len(config.renditions) == 2
        assert config.storage.key_id == ""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "renditions": [
                        {"name": "360p", "width": 640, "height": 360, "bitrate": "600k"}
                    ],
                    "hls": {"segment_duration": 6},
                    "storage": {"bucket_id": "bkt", "bucket_name": "videos"},
                }
            )
        )

        config = ConfigManager(path, environ={}).config

        assert [r.name for r in config.renditions] == ["360p"]
        assert config.hls.segment_duration == 6
        assert config.storage.bucket_id == "bkt"

    def test_env_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"storage": {"bucket_id": "from-file"}}))
        environ = {
            "B2_KEY_ID": "key-id",
            "B2_APPLICATION_KEY": "secret",
            "B2_BUCKET_ID": "from-env",
            "B2_BUCKET_NAME": "bucket",
        }

        config = ConfigManager(path, environ=environ).config

        assert config.storage.key_id == "key-id"
        assert config.storage.application_key == "secret"
        assert config.storage.bucket_id == "from-env"
        assert config.storage.bucket_name == "bucket"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            ConfigManager(tmp_path / "missing.yaml", environ={}).load()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("hls: [unclosed")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ConfigManager(path, environ={}).load()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ConfigurationError, match="empty"):
            ConfigManager(path, environ={}).load()

    def test_validation_error(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text(yaml.safe_dump({"hls": {"segment_duration": 0}}))
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            ConfigManager(path, environ={}).load()

    def test_init_and_reload(self, tmp_path):
        path = tmp_path / "sub" / "config.yaml"
        manager = ConfigManager(path, environ={})

        created = manager.init_default_config(path)

        assert created == path
        assert path.exists()
        assert manager.reload().renditions[0].name == "480p"

    def test_init_refuses_overwrite(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("hls: {}\n")
        manager = ConfigManager(path, environ={})

        with pytest.raises(ConfigurationError, match="already exists"):
            manager.init_default_config(path)

        manager.init_default_config(path, force=True)
        assert "renditions" in Path(path).read_text()
