"""Tests for the device configuration record."""

from __future__ import annotations

import json

import pytest

from tv_control.common.config import (
    REQUIRED_KEYS,
    load_config,
    parse_config,
    save_config,
    write_and_validate_config,
)
from tv_control.exceptions.config_invalid_exception import ConfigInvalidException


class TestLoadConfig:
    """Test reading and validating the record."""

    def test_load_saved_record(self, paths, device_config):
        save_config(device_config, paths.config_file)
        assert load_config(paths.config_file) == device_config

    def test_record_keys_match_installer_format(self, paths, device_config):
        """The JSON on disk uses the flat key names the dispatcher reads."""
        save_config(device_config, paths.config_file)
        data = json.loads(paths.config_file.read_text())
        assert set(data) == set(REQUIRED_KEYS)
        assert data["file_id"] == "ABC123"

    def test_missing_file(self, paths):
        with pytest.raises(ConfigInvalidException, match="File not found"):
            load_config(paths.config_file)

    def test_malformed_json(self, paths):
        paths.config_file.write_text('{"file_id": "ABC123",')
        with pytest.raises(ConfigInvalidException, match="Malformed JSON"):
            load_config(paths.config_file)

    def test_not_an_object(self, paths):
        paths.config_file.write_text('["ABC123"]')
        with pytest.raises(ConfigInvalidException, match="Expected a JSON object"):
            load_config(paths.config_file)

    def test_missing_key(self, device_config):
        data = device_config.to_dict()
        del data["email_to"]
        with pytest.raises(ConfigInvalidException, match="email_to"):
            parse_config(data)

    def test_non_string_value(self, device_config):
        data = device_config.to_dict()
        data["file_id"] = 123
        with pytest.raises(ConfigInvalidException, match="file_id"):
            parse_config(data)

    def test_unknown_keys_ignored(self, device_config):
        data = dict(device_config.to_dict(), extra="value")
        assert parse_config(data) == device_config


class TestSaveConfig:
    """Test atomic persistence."""

    def test_no_temp_files_left_behind(self, paths, device_config):
        save_config(device_config, paths.config_file)
        leftovers = [p.name for p in paths.root.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_overwrites_existing_record(self, paths, device_config):
        save_config(device_config, paths.config_file)
        updated = device_config.with_video_file(paths.video_dir / "other.mp4")
        save_config(updated, paths.config_file)
        assert load_config(paths.config_file).video_file == str(paths.video_dir / "other.mp4")

    def test_failed_write_keeps_previous_record(self, paths, device_config, monkeypatch):
        save_config(device_config, paths.config_file)

        def broken_dump(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr("tv_control.common.config.json.dump", broken_dump)
        with pytest.raises(OSError):
            save_config(device_config.with_video_file("/nowhere.mp4"), paths.config_file)

        assert load_config(paths.config_file) == device_config
        assert not [p for p in paths.root.iterdir() if p.name.endswith(".tmp")]

    def test_write_and_validate_returns_record(self, paths, device_config):
        assert write_and_validate_config(device_config, paths.config_file) == device_config
