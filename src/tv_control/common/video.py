"""
TV Control - Video Download

Fetches the video from Google Drive into a temp file next to the canonical
path and promotes it with os.replace only after the whole transfer has
succeeded. The configuration record's video_file is updated after the move.
A failed or interrupted transfer leaves the previous video in place.
"""

import logging
import os
import subprocess
from pathlib import Path

import requests

from tv_control.common.config import DeviceConfig, save_config
from tv_control.common.paths import ProjectPaths
from tv_control.exceptions.download_exception import DownloadException

logger = logging.getLogger(__name__)

GDRIVE_URL_TEMPLATE = 'https://drive.google.com/uc?id={file_id}&export=download'

CONNECT_TIMEOUT = 15  # seconds
READ_TIMEOUT = 120  # seconds
CHUNK_SIZE = 1024 * 1024


def build_download_url(file_id: str) -> str:
    return GDRIVE_URL_TEMPLATE.format(file_id=file_id)


def validate_video(path: Path) -> bool:
    """
    Check that the file has a decodable video stream.

    An ffprobe that is missing, cannot be executed or times out is treated
    as valid; only an explicit ffprobe failure rejects the file.
    """
    try:
        result = subprocess.run(
            ['ffprobe', '-v', 'error', '-select_streams', 'v:0',
             '-show_entries', 'stream=codec_name', '-of', 'csv=p=0',
             str(path)],
            capture_output=True, text=True, errors='replace', timeout=30
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"ffprobe timeout validating {path}, assuming valid")
        return True
    except FileNotFoundError:
        logger.debug("ffprobe not found, skipping video validation")
        return True
    except OSError as e:
        logger.warning(f"ffprobe could not run ({e}), skipping video validation")
        return True

    if result.returncode != 0 or not result.stdout.strip():
        logger.error(f"Downloaded video is invalid: {result.stderr.strip()[:200]}")
        return False
    return True


def fetch_to_path(url: str, dest_path: Path) -> int:
    """
    Stream url into dest_path.

    Returns:
        Number of bytes written.

    Raises:
        DownloadException: on any HTTP, network or content error.
    """
    dest_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with requests.get(url, stream=True, timeout=(CONNECT_TIMEOUT, READ_TIMEOUT)) as response:
            response.raise_for_status()

            # Drive answers with an HTML interstitial for files it will not serve directly
            content_type = response.headers.get('Content-Type', '')
            if content_type.startswith('text/html'):
                raise DownloadException(url, "Remote host returned an HTML page instead of a video.")

            written = 0
            with open(dest_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        written += len(chunk)
                f.flush()
                os.fsync(f.fileno())
    except requests.exceptions.RequestException as e:
        raise DownloadException(url, f"{type(e).__name__}: {e}") from e
    except OSError as e:
        raise DownloadException(url, f"Could not write {dest_path}: {e}") from e

    if written == 0:
        raise DownloadException(url, "Downloaded file is empty.")

    return written


def download_video(config: DeviceConfig, paths: ProjectPaths) -> DeviceConfig:
    """
    Download the configured video and promote it to the canonical path.

    Returns:
        The updated configuration record, already persisted.

    Raises:
        DownloadException: if any step fails. The temp file is removed and
        neither the canonical video nor the record is touched.
    """
    url = build_download_url(config.file_id)
    temp_path = paths.temp_video
    canonical_path = paths.canonical_video

    logger.debug(f"Downloading video {config.file_id} to {temp_path}")
    try:
        size = fetch_to_path(url, temp_path)

        if not validate_video(temp_path):
            raise DownloadException(url, "Downloaded file is not a playable video.")

        try:
            os.replace(temp_path, canonical_path)
        except OSError as e:
            raise DownloadException(url, f"Could not move video into place: {e}") from e
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    updated = config.with_video_file(canonical_path)
    try:
        save_config(updated, paths.config_file)
    except OSError as e:
        raise DownloadException(url, f"Video replaced but the record could not be updated: {e}") from e

    logger.info(f"Video updated: {canonical_path} ({size / 1024 / 1024:.1f}MB)")
    return updated
