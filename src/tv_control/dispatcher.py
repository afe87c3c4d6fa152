#!/usr/bin/env python3
"""
TV Control Dispatcher

Non-interactive entry point run by cron (or by hand) with a single verb:

  play   Download the latest video, power the TV on over HDMI-CEC and start
         the player looping fullscreen. The three steps always run in order;
         a failed download or power-on is reported by email but does not
         stop the remaining steps.
  stop   Stop the player and put the TV in standby.
  setup  Register the daily play (06:00) and stop (23:00) cron entries.

Anything else prints usage. Each invocation performs exactly one action and
exits; the player keeps running after the dispatcher returns.
"""

import argparse
import shutil
import sys
from pathlib import Path
from typing import List, Optional

from tv_control.common.cec import CecClient
from tv_control.common.config import DeviceConfig, load_config
from tv_control.common.logging_config import setup_service_logging
from tv_control.common.notify import EmailNotifier
from tv_control.common.paths import ProjectPaths, get_project_paths
from tv_control.common.player import start_player, stop_player
from tv_control.common.schedule import register_schedule
from tv_control.common.video import download_video
from tv_control.exceptions.config_invalid_exception import ConfigInvalidException
from tv_control.exceptions.download_exception import DownloadException

logger = setup_service_logging('tv-control')

CONSOLE_SCRIPT = 'tv-control'
VERBS = ('play', 'stop', 'setup')

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def usage(prog: str = CONSOLE_SCRIPT) -> str:
    return f"Usage: {prog} {{{'|'.join(VERBS)}}}"


def refresh_video(config: DeviceConfig, paths: ProjectPaths, notifier: EmailNotifier) -> DeviceConfig:
    """Download step of `play`. Returns the config to play from."""
    try:
        return download_video(config, paths)
    except DownloadException as e:
        logger.error(f"Video download failed: {e.message}")
    except Exception as e:
        logger.exception(f"Unexpected error downloading video: {e}")

    notifier.notify("Failed to download video!")
    return config


def turn_on_tv(cec: CecClient, notifier: EmailNotifier) -> bool:
    try:
        if not cec.is_display_attached:
            logger.info("No HDMI device detected. Skipping TV power on.")
            return False

        if cec.power_on():
            logger.info("TV is ON.")
            return True
    except Exception as e:
        logger.exception(f"Unexpected error powering on TV: {e}")

    logger.error("TV failed to turn ON!")
    notifier.notify("TV failed to turn ON!")
    return False


def turn_off_tv(cec: CecClient) -> bool:
    try:
        if not cec.is_display_attached:
            logger.info("No HDMI device detected. Skipping TV power off.")
            return False

        if cec.power_off():
            logger.info("TV turned off.")
            return True
    except Exception as e:
        logger.exception(f"Unexpected error powering off TV: {e}")
        return False

    logger.warning("TV standby command could not be sent.")
    return False


def play(paths: ProjectPaths, cec: CecClient) -> int:
    try:
        config = load_config(paths.config_file)
    except ConfigInvalidException as e:
        logger.error(f"Cannot play: {e.message}")
        return EXIT_FAILURE

    notifier = EmailNotifier(config)

    config = refresh_video(config, paths, notifier)
    turn_on_tv(cec, notifier)

    pid = start_player(Path(config.video_file), paths.player_pid_file)
    if pid is None:
        logger.error(f"Video could not be started: {config.video_file}")
    else:
        logger.info(f"Video started (PID {pid}).")
    return EXIT_OK


def stop(paths: ProjectPaths, cec: CecClient) -> int:
    try:
        if stop_player(paths.player_pid_file):
            logger.info("Video stopped.")
        else:
            logger.info("Video stopped (no player was running).")
    except Exception as e:
        logger.exception(f"Unexpected error stopping video: {e}")
    turn_off_tv(cec)
    return EXIT_OK


def resolve_dispatcher_path(paths: ProjectPaths) -> Path:
    """
    Path that cron entries should invoke.

    The launcher written by the installer is preferred; otherwise the
    installed console script, then the current executable.
    """
    if paths.control_script.exists():
        return paths.control_script

    console_script = shutil.which(CONSOLE_SCRIPT)
    if console_script:
        return Path(console_script).resolve()

    return Path(sys.argv[0]).resolve()


def setup(paths: ProjectPaths, autostart: bool = False) -> int:
    dispatcher = resolve_dispatcher_path(paths)
    registered = register_schedule(dispatcher, paths.cron_log_file, autostart=autostart)
    summary = ', '.join(f"{verb}={when}" for verb, when in registered.items())
    logger.info(f"Cron jobs set up for {dispatcher} ({summary}).")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=CONSOLE_SCRIPT,
        description='Control the signage display: play, stop, or register the schedule',
        add_help=True
    )
    parser.add_argument('command', nargs='?', help=f"One of: {', '.join(VERBS)}")
    parser.add_argument('--autostart', action='store_true',
                        help='With setup: also start playback at boot')
    parser.add_argument('--project-dir', help='Project directory (defaults to $TV_CONTROL_HOME or ~/tv_project)')
    return parser


def run(argv: Optional[List[str]] = None, cec: Optional[CecClient] = None) -> int:
    args, extra = build_parser().parse_known_args(argv)

    if args.command not in VERBS or extra:
        print(usage())
        return EXIT_USAGE

    paths = get_project_paths(args.project_dir)
    paths.ensure_directories()
    setup_service_logging('tv-control', paths.log_file)

    if args.command == 'setup':
        return setup(paths, autostart=args.autostart)

    cec = cec or CecClient()
    if args.command == 'play':
        return play(paths, cec)
    return stop(paths, cec)


def main():
    """Entry point for the tv-control console script."""
    try:
        sys.exit(run())
    except Exception as e:
        logger.exception(f"Unhandled exception in dispatcher: {e}")
        sys.exit(EXIT_FAILURE)


if __name__ == '__main__':
    main()
