"""Shared test fixtures for the TV Control test suite.

This module provides reusable fixtures for:
- Project paths rooted in a temp directory
- Device configuration records
- Canned subprocess results
- Log handler cleanup between tests
"""

from __future__ import annotations

import logging
import subprocess
from logging.handlers import WatchedFileHandler
from unittest.mock import Mock

import pytest

from tv_control.common.cec import CecClient
from tv_control.common.config import DeviceConfig, save_config
from tv_control.common.paths import ProjectPaths

# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _detach_file_handlers():
    """Drop the per-test log file handlers that entry points attach to the root logger."""
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, WatchedFileHandler):
            root_logger.removeHandler(handler)
            handler.close()


# ============================================================================
# Project Fixtures
# ============================================================================


@pytest.fixture
def paths(tmp_path) -> ProjectPaths:
    """Project layout rooted in a temp directory, with directories created."""
    project = ProjectPaths(tmp_path / "tv_project")
    project.ensure_directories()
    return project


@pytest.fixture
def device_config(paths) -> DeviceConfig:
    return DeviceConfig(
        file_id="ABC123",
        video_file=str(paths.canonical_video),
        device_id="0190b6a2-7c1e-7d3a-9f00-123456789abc",
        device_name="Living Room",
        email_from="sender@example.com",
        email_to="operator@example.com",
    )


@pytest.fixture
def saved_config(paths, device_config) -> DeviceConfig:
    """A valid record on disk plus an existing canonical video."""
    save_config(device_config, paths.config_file)
    paths.canonical_video.write_bytes(b"old video")
    return device_config


# ============================================================================
# Device Fixtures
# ============================================================================


@pytest.fixture
def mock_cec():
    """CecClient double with an attached display that powers on."""
    cec = Mock(spec=CecClient)
    cec.is_display_attached = True
    cec.power_on.return_value = True
    cec.power_off.return_value = True
    return cec


def completed(stdout="", returncode=0, stderr=""):
    """Build a CompletedProcess like subprocess.run returns."""
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)
