"""
TV Control - Device Configuration Record

The record is a flat JSON object written once by the installer and updated by
the dispatcher after each successful download. Writes always go to a temp
file in the same directory followed by os.replace, so a reader never sees a
partially written record.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path

from tv_control.exceptions.config_invalid_exception import ConfigInvalidException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceConfig:
    file_id: str
    video_file: str
    device_id: str
    device_name: str
    email_from: str
    email_to: str

    def with_video_file(self, video_file: os.PathLike) -> 'DeviceConfig':
        return replace(self, video_file=str(video_file))

    def to_dict(self) -> dict:
        return asdict(self)


REQUIRED_KEYS = tuple(f.name for f in fields(DeviceConfig))


def parse_config(data, config_path: Path = None) -> DeviceConfig:
    """
    Build a DeviceConfig from decoded JSON.

    Unknown keys are ignored. Every required key must be present and be a string.

    Raises:
        ConfigInvalidException: if the data is not an object or a key is missing.
    """
    if not isinstance(data, dict):
        raise ConfigInvalidException(config_path, "Expected a JSON object.")

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise ConfigInvalidException(config_path, f"Missing keys: {', '.join(missing)}")

    not_strings = [key for key in REQUIRED_KEYS if not isinstance(data[key], str)]
    if not_strings:
        raise ConfigInvalidException(config_path, f"Non-string values for: {', '.join(not_strings)}")

    return DeviceConfig(**{key: data[key] for key in REQUIRED_KEYS})


def load_config(config_path: Path) -> DeviceConfig:
    """
    Read and validate the configuration record.

    Raises:
        ConfigInvalidException: if the file is missing, unreadable or malformed.
    """
    config_path = Path(config_path)
    try:
        raw = config_path.read_text(encoding='utf-8')
    except FileNotFoundError:
        raise ConfigInvalidException(config_path, "File not found.")
    except OSError as e:
        raise ConfigInvalidException(config_path, f"Could not read file: {e}")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigInvalidException(config_path, f"Malformed JSON: {e}")

    return parse_config(data, config_path)


def save_config(config: DeviceConfig, config_path: Path) -> None:
    """Atomically write the configuration record to config_path."""
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f'.{config_path.name}.', suffix='.tmp', dir=str(config_path.parent)
    )
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(config.to_dict(), f, indent=2)
            f.write('\n')
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, config_path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise

    logger.debug(f"Saved configuration record to {config_path}")


def write_and_validate_config(config: DeviceConfig, config_path: Path) -> DeviceConfig:
    """
    Save the record and read it back.

    Used by the installer, which must abort if the persisted record does not
    parse back to the same values.

    Raises:
        ConfigInvalidException: if the re-read record is invalid or differs.
    """
    save_config(config, config_path)
    reloaded = load_config(config_path)
    if reloaded != config:
        raise ConfigInvalidException(config_path, "Persisted record does not match what was written.")
    return reloaded
