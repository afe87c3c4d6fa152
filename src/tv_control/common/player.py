"""
TV Control - Media Player Process Management

Launches mpv detached in looping fullscreen mode on the active output and
records its PID in a sidecar file so a later `stop` can target it directly.
Name-based termination is the fallback when no usable sidecar exists.
"""

import logging
import os
import signal
import subprocess
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

PLAYER_BINARY = 'mpv'
DEFAULT_OUTPUT = 'HDMI-1'
DEFAULT_DISPLAY = ':0'
DEFAULT_COMMAND_TIMEOUT = 10  # seconds


def detect_output(timeout: int = DEFAULT_COMMAND_TIMEOUT) -> str:
    """
    Find the connected output head to play on.

    Prefers the primary connected output, then the first connected one, and
    falls back to DEFAULT_OUTPUT when xrandr is unavailable or lists nothing.
    """
    env = os.environ.copy()
    env.setdefault('DISPLAY', DEFAULT_DISPLAY)
    try:
        result = subprocess.run(
            ['xrandr', '--query'],
            capture_output=True,
            text=True,
            errors='replace',
            env=env,
            timeout=timeout
        )
    except subprocess.TimeoutExpired:
        logger.warning("xrandr timed out")
        return DEFAULT_OUTPUT
    except FileNotFoundError:
        logger.warning("xrandr not found")
        return DEFAULT_OUTPUT
    except OSError as e:
        logger.warning(f"xrandr could not run: {e}")
        return DEFAULT_OUTPUT

    if result.returncode != 0:
        logger.warning(f"xrandr failed: {result.stderr.strip()}")
        return DEFAULT_OUTPUT

    connected = []
    for line in result.stdout.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[1] == 'connected':
            if 'primary' in parts[2:3]:
                return parts[0]
            connected.append(parts[0])

    if connected:
        return connected[0]

    logger.info(f"No connected output detected, using {DEFAULT_OUTPUT}")
    return DEFAULT_OUTPUT


def build_player_command(video_file: Path, output: str) -> List[str]:
    return [
        PLAYER_BINARY,
        '--fullscreen',
        f'--fs-screen-name={output}',
        '--loop-file=inf',
        '--keep-open=no',
        '--no-osc',
        '--no-osd-bar',
        '--no-input-default-bindings',
        '--no-terminal',
        '--hwdec=auto',
        str(video_file),
    ]


def _read_pid(pid_file: Path) -> Optional[int]:
    try:
        return int(pid_file.read_text().strip())
    except FileNotFoundError:
        return None
    except (ValueError, OSError) as e:
        logger.warning(f"Ignoring unreadable player PID file {pid_file}: {e}")
        return None


def _is_player_process(pid: int) -> bool:
    """True if pid is alive and is the player (guards against PID reuse)."""
    try:
        comm = Path(f'/proc/{pid}/comm').read_text().strip()
    except OSError:
        return False
    return comm == PLAYER_BINARY


def terminate_tracked_player(pid_file: Path) -> bool:
    """
    Terminate the player recorded in the sidecar file, if it is still running.

    The sidecar is removed either way.

    Returns:
        True if a tracked player was signalled.
    """
    pid = _read_pid(pid_file)
    pid_file.unlink(missing_ok=True)

    if pid is None or not _is_player_process(pid):
        return False

    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        return False
    except PermissionError as e:
        logger.warning(f"Not allowed to stop player PID {pid}: {e}")
        return False

    logger.debug(f"Sent SIGTERM to player PID {pid}")
    return True


def kill_players_by_name(timeout: int = DEFAULT_COMMAND_TIMEOUT) -> bool:
    """
    Fallback termination by process name.

    Returns:
        True if pkill matched at least one process.
    """
    try:
        result = subprocess.run(
            ['pkill', '-x', PLAYER_BINARY],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=timeout
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning(f"pkill {PLAYER_BINARY} failed: {e}")
        return False
    # pkill exits 1 when nothing matched
    return result.returncode == 0


def stop_player(pid_file: Path) -> bool:
    """
    Stop the running player. A player that is not running is not an error.

    Returns:
        True if a player process was found and signalled.
    """
    if terminate_tracked_player(pid_file):
        return True
    return kill_players_by_name()


def start_player(video_file: Path, pid_file: Path, output: Optional[str] = None) -> Optional[int]:
    """
    Launch the player detached, looping video_file fullscreen.

    Any player tracked by the sidecar is stopped first so repeated `play`
    runs do not stack players.

    Returns:
        PID of the launched player, or None if it could not be started.
    """
    video_file = Path(video_file)
    if not video_file.exists():
        logger.error(f"Video file not found: {video_file}")
        return None

    terminate_tracked_player(pid_file)

    output = output or detect_output()
    cmd = build_player_command(video_file, output)

    env = os.environ.copy()
    env.setdefault('DISPLAY', DEFAULT_DISPLAY)

    try:
        process = subprocess.Popen(
            cmd,
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True  # Detach from parent
        )
    except OSError as e:
        logger.error(f"Failed to launch {PLAYER_BINARY}: {e}")
        return None

    try:
        pid_file.parent.mkdir(parents=True, exist_ok=True)
        pid_file.write_text(f'{process.pid}\n')
    except OSError as e:
        logger.warning(f"Could not record player PID {process.pid}: {e}")

    return process.pid
