"""
TV Control - Shared Path Constants

All file and directory paths used by the installer and the dispatcher are
derived here from a single project root.

Directory structure:
  ~/tv_project/
    ├── videos/
    │   └── current_video.mp4   # Canonical video, replaced on each download
    ├── tv_config.json          # Device configuration record
    ├── tv_control              # Dispatcher launcher written by the installer
    ├── tv_control.log          # Dispatcher log
    ├── install.log             # Installer log
    ├── cron.log                # stdout/stderr of scheduled runs
    └── player.pid              # PID of the last launched player

Override the root by exporting TV_CONTROL_HOME.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

PROJECT_DIR_ENV_VAR = 'TV_CONTROL_HOME'
DEFAULT_PROJECT_DIR = Path.home() / 'tv_project'

CANONICAL_VIDEO_NAME = 'current_video.mp4'


@dataclass(frozen=True)
class ProjectPaths:
    root: Path

    @property
    def video_dir(self) -> Path:
        return self.root / 'videos'

    @property
    def canonical_video(self) -> Path:
        return self.video_dir / CANONICAL_VIDEO_NAME

    @property
    def temp_video(self) -> Path:
        # Same directory as the canonical file so os.replace stays atomic
        return self.video_dir / f'{CANONICAL_VIDEO_NAME}.part'

    @property
    def config_file(self) -> Path:
        return self.root / 'tv_config.json'

    @property
    def control_script(self) -> Path:
        return self.root / 'tv_control'

    @property
    def log_file(self) -> Path:
        return self.root / 'tv_control.log'

    @property
    def install_log_file(self) -> Path:
        return self.root / 'install.log'

    @property
    def cron_log_file(self) -> Path:
        return self.root / 'cron.log'

    @property
    def player_pid_file(self) -> Path:
        return self.root / 'player.pid'

    def ensure_directories(self) -> None:
        """Create the project and video directories if they do not exist."""
        self.video_dir.mkdir(parents=True, exist_ok=True)


def get_project_paths(root: Optional[os.PathLike] = None) -> ProjectPaths:
    """
    Resolve the project paths.

    An explicit root wins, then the TV_CONTROL_HOME environment variable,
    then ~/tv_project.
    """
    if root is None:
        env_root = os.environ.get(PROJECT_DIR_ENV_VAR, '').strip()
        root = env_root or DEFAULT_PROJECT_DIR
    return ProjectPaths(Path(root).expanduser().resolve())
