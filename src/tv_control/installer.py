#!/usr/bin/env python3
"""
TV Control Installer

Interactive, run-once setup for a signage device:
1. Install system packages (cec-utils, mpv, ssmtp, cron, xrandr, ffprobe)
2. Ask for the Google Drive file ID
3. Ask for device name and email details, configure ssmtp and send a
   verification email until the operator confirms it arrived
4. Generate the device ID (UUID v7)
5. Download the initial video
6. Write and validate the device configuration record
7. Write the dispatcher launcher and run it once with `setup`

Any failure in steps 1, 5, 6 or 7 aborts with a non-zero exit status.
"""

import argparse
import getpass
import os
import shlex
import subprocess
import sys
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import uuid6  # For UUID v7 support

from tv_control.common.config import DeviceConfig, write_and_validate_config
from tv_control.common.logging_config import add_log_file, log_service_start, setup_service_logging
from tv_control.common.notify import send_verification_email, write_ssmtp_conf
from tv_control.common.paths import PROJECT_DIR_ENV_VAR, ProjectPaths, get_project_paths
from tv_control.common.video import download_video
from tv_control.exceptions.config_invalid_exception import ConfigInvalidException
from tv_control.exceptions.download_exception import DownloadException
from tv_control.exceptions.package_install_exception import PackageInstallException
from tv_control.exceptions.tv_control_exception import TvControlException

logger = setup_service_logging('tv-control-install')

REQUIRED_PACKAGES = [
    'cec-utils',
    'mpv',
    'ssmtp',
    'cron',
    'x11-xserver-utils',  # xrandr
    'ffmpeg',  # ffprobe
]

APT_TIMEOUT = 600  # seconds
SETUP_TIMEOUT = 60  # seconds

# Which answers are asked again when the verification email does not arrive
REPROMPT_EMAIL = 'email'
REPROMPT_ALL = 'all'

LAUNCHER_TEMPLATE = """#!/bin/sh
# TV Control dispatcher launcher (generated by tv-control-install)
export {env_var}={project_dir}
exec {python} -m tv_control.dispatcher "$@"
"""


@dataclass
class EmailSettings:
    email_from: str
    email_to: str
    app_password: str


class Prompter:
    """Interactive console input, swappable in tests."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        secret_func: Callable[[str], str] = getpass.getpass
    ):
        self._input = input_func
        self._secret = secret_func

    def ask(self, prompt: str, required: bool = True) -> str:
        while True:
            answer = self._input(prompt).strip()
            if answer or not required:
                return answer
            print("A value is required.")

    def ask_email(self, prompt: str) -> str:
        while True:
            answer = self.ask(prompt)
            if '@' in answer:
                return answer
            print("Please enter a valid email address.")

    def ask_secret(self, prompt: str) -> str:
        while True:
            answer = self._secret(prompt)
            if answer:
                return answer
            print("A value is required.")

    def confirm(self, prompt: str) -> bool:
        return self.ask(prompt, required=False).lower() in ('y', 'yes')


def _sudo_prefix() -> List[str]:
    return [] if os.geteuid() == 0 else ['sudo']


def install_packages(packages: List[str] = REQUIRED_PACKAGES) -> None:
    """
    Install the system packages the dispatcher drives.

    Raises:
        PackageInstallException: if apt-get fails or cannot run.
    """
    logger.info("Installing necessary dependencies...")
    env = os.environ.copy()
    env['DEBIAN_FRONTEND'] = 'noninteractive'

    for cmd in (
        [*_sudo_prefix(), 'apt-get', 'update'],
        [*_sudo_prefix(), 'apt-get', 'install', '-y', *packages],
    ):
        try:
            result = subprocess.run(cmd, env=env, capture_output=True, text=True, timeout=APT_TIMEOUT)
        except subprocess.TimeoutExpired:
            raise PackageInstallException(packages, f"'{' '.join(cmd)}' timed out.")
        except FileNotFoundError as e:
            raise PackageInstallException(packages, str(e))

        if result.returncode != 0:
            raise PackageInstallException(packages, result.stderr.strip()[-500:])

    logger.info("Dependencies installed")


def ask_email_settings(prompter: Prompter) -> EmailSettings:
    return EmailSettings(
        email_from=prompter.ask_email("Enter sender email (used to send messages): "),
        email_to=prompter.ask_email("Enter recipient email (where alerts will be sent): "),
        app_password=prompter.ask_secret("Enter your email app password (for Gmail): "),
    )


def verify_email(prompter: Prompter, reprompt: str = REPROMPT_EMAIL) -> Tuple[str, EmailSettings]:
    """
    Collect device name and email settings until a test email is confirmed.

    With reprompt='email' the device name is asked once and only the email
    fields are asked again after a failed verification. With reprompt='all'
    the device name is asked again too.

    Returns:
        Tuple of (device_name, EmailSettings)
    """
    device_name = None
    while True:
        if device_name is None or reprompt == REPROMPT_ALL:
            device_name = prompter.ask("Enter device name (this will be sent in emails): ")
        settings = ask_email_settings(prompter)

        logger.info("Configuring ssmtp to test email...")
        if write_ssmtp_conf(settings.email_from, settings.app_password):
            test_tag = str(uuid.uuid4())
            if send_verification_email(settings.email_from, settings.email_to, test_tag):
                print(f"A verification email has been sent to {settings.email_to}.")
                if prompter.confirm("Did you receive the email? (yes/no): "):
                    logger.info("Email verified. Continuing setup...")
                    return device_name, settings
            else:
                logger.warning(f"Verification email could not be sent to {settings.email_to}")

        logger.info("Please check your email details and try again.")


def generate_device_id() -> str:
    """UUID v7: timestamp-sortable and generated once per installation."""
    return str(uuid6.uuid7())


def write_launcher(paths: ProjectPaths, python: str = sys.executable) -> Path:
    """Write the executable dispatcher launcher at its fixed path."""
    launcher = paths.control_script
    launcher.write_text(LAUNCHER_TEMPLATE.format(
        env_var=PROJECT_DIR_ENV_VAR,
        project_dir=shlex.quote(str(paths.root)),
        python=shlex.quote(python),
    ))
    launcher.chmod(0o755)
    logger.info(f"Saved control script to {launcher}")
    return launcher


def run_launcher_setup(launcher: Path, autostart: bool = False) -> None:
    """
    Invoke the freshly written launcher with `setup`.

    Raises:
        TvControlException: if setup exits non-zero.
    """
    cmd = [str(launcher), 'setup']
    if autostart:
        cmd.append('--autostart')

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=SETUP_TIMEOUT)
    except subprocess.TimeoutExpired:
        raise TvControlException(f"'{' '.join(cmd)}' timed out")

    if result.returncode != 0:
        raise TvControlException(f"'{' '.join(cmd)}' failed: {result.stderr.strip()}")


def run_install(
    paths: ProjectPaths,
    prompter: Prompter,
    skip_packages: bool = False,
    reprompt: str = REPROMPT_EMAIL,
    autostart: bool = False,
) -> DeviceConfig:
    """
    Execute all installation steps.

    Returns:
        The persisted configuration record.

    Raises:
        TvControlException: on any setup-fatal failure.
    """
    paths.ensure_directories()
    add_log_file(paths.install_log_file)
    log_service_start(logger, 'TV Control Installer')

    if skip_packages:
        logger.info("Skipping package installation")
    else:
        install_packages()

    file_id = prompter.ask("Enter Google Drive File ID: ")
    device_name, email = verify_email(prompter, reprompt=reprompt)

    device_id = generate_device_id()
    logger.info(f"Generated Device ID: {device_id}")
    print(f"Please save this Device ID securely: {device_id}")

    config = DeviceConfig(
        file_id=file_id,
        video_file=str(paths.canonical_video),
        device_id=device_id,
        device_name=device_name,
        email_from=email.email_from,
        email_to=email.email_to,
    )

    # The downloader persists the record as part of a successful fetch
    config = download_video(config, paths)
    config = write_and_validate_config(config, paths.config_file)

    launcher = write_launcher(paths)
    run_launcher_setup(launcher, autostart=autostart)
    logger.info("Cron jobs set up.")

    logger.info(f"Installation complete! Device ID: {device_id} and Device Name: {device_name}")
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Install and configure the TV signage device')
    parser.add_argument('--project-dir', help='Project directory (defaults to $TV_CONTROL_HOME or ~/tv_project)')
    parser.add_argument('--skip-packages', action='store_true', help='Do not run apt-get')
    parser.add_argument('--reprompt', choices=[REPROMPT_EMAIL, REPROMPT_ALL], default=REPROMPT_EMAIL,
                        help='Answers to ask again when the verification email does not arrive')
    parser.add_argument('--autostart', action='store_true', help='Also start playback at boot')
    return parser


def main(argv: Optional[List[str]] = None):
    """Entry point for the tv-control-install console script."""
    args = build_parser().parse_args(argv)
    paths = get_project_paths(args.project_dir)

    try:
        run_install(
            paths,
            Prompter(),
            skip_packages=args.skip_packages,
            reprompt=args.reprompt,
            autostart=args.autostart,
        )
    except PackageInstallException as e:
        logger.error(f"Error installing dependencies! {e.message}")
        sys.exit(1)
    except DownloadException as e:
        logger.error(f"Error downloading video! {e.message}")
        sys.exit(1)
    except ConfigInvalidException as e:
        logger.error(e.message)
        sys.exit(1)
    except TvControlException as e:
        logger.error(f"Installation failed: {e.message}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Installation cancelled")
        sys.exit(130)
    except Exception as e:
        logger.exception(f"Unhandled exception during installation: {e}")
        sys.exit(1)

    sys.exit(0)


if __name__ == '__main__':
    main()
