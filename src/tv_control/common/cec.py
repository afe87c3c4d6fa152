"""
TV Control - HDMI-CEC Display Link

Thin wrapper around cec-client. Commands are piped to a single-shot
cec-client process and responses are matched by substring.

Capability probe: `cec-client -l` must list the fixed logical address marker
before any power command is sent. The probe runs once per CecClient, i.e.
once per dispatcher invocation.
"""

import logging
import subprocess
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

CEC_CLIENT = 'cec-client'

# Marker that must appear in `cec-client -l` output for a display to be usable
CEC_PROBE_MARKER = 'device: 1'

# Logical address of the TV on the CEC bus
CEC_TV_ADDRESS = 0

POWER_STATUS_PREFIX = 'power status:'
POWER_STATUS_ON = 'on'

DEFAULT_COMMAND_TIMEOUT = 10  # seconds

# Power-on verification polls until the TV reports on, or gives up
POWER_ON_POLL_INTERVAL = 2  # seconds
POWER_ON_MAX_WAIT = 30  # seconds


class CecClient:
    """Client for the display's HDMI-CEC control link."""

    def __init__(
        self,
        poll_interval: float = POWER_ON_POLL_INTERVAL,
        max_wait: float = POWER_ON_MAX_WAIT,
        timeout: int = DEFAULT_COMMAND_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock
        self._display_attached: Optional[bool] = None

    def _run(self, args: list, stdin_text: Optional[str] = None) -> Optional[str]:
        """Run cec-client and return stdout, or None if it could not run."""
        try:
            result = subprocess.run(
                [CEC_CLIENT, *args],
                input=stdin_text,
                capture_output=True,
                text=True,
                errors='replace',  # OSD names are not always UTF-8
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"cec-client {' '.join(args)} timed out")
            return None
        except FileNotFoundError:
            logger.warning("cec-client not found - cec-utils may not be installed")
            return None
        except OSError as e:
            logger.warning(f"cec-client {' '.join(args)} could not run: {e}")
            return None

        if result.returncode != 0:
            logger.debug(f"cec-client {' '.join(args)} exited {result.returncode}: {result.stderr.strip()}")
        return result.stdout

    def send_command(self, command: str) -> Optional[str]:
        """Send one CEC command (e.g. 'on 0') in single-command mode."""
        return self._run(['-s', '-d', '1'], stdin_text=f'{command}\n')

    @property
    def is_display_attached(self) -> bool:
        """Capability probe, evaluated once and cached."""
        if self._display_attached is None:
            output = self._run(['-l']) or ''
            self._display_attached = CEC_PROBE_MARKER in output
            logger.debug(f"CEC capability probe: attached={self._display_attached}")
        return self._display_attached

    def get_power_status(self) -> Optional[str]:
        """
        Query the TV's power status.

        Returns:
            The status word (e.g. 'on', 'standby'), or None if no status line was returned.
        """
        output = self.send_command(f'pow {CEC_TV_ADDRESS}')
        if not output:
            return None
        for line in output.splitlines():
            if POWER_STATUS_PREFIX in line:
                return line.split(POWER_STATUS_PREFIX, 1)[1].strip().lower()
        return None

    def wait_for_power_on(self) -> bool:
        """
        Poll the power status until the TV reports on, up to max_wait seconds.

        Returns:
            True if the TV reported on within the window.
        """
        deadline = self._clock() + self.max_wait
        while True:
            self._sleep(self.poll_interval)
            status = self.get_power_status()
            if status == POWER_STATUS_ON:
                return True
            logger.debug(f"TV power status: {status}")
            if self._clock() >= deadline:
                return False

    def power_on(self) -> bool:
        """Send power-on and verify the TV came on. Caller must check the probe first."""
        self.send_command(f'on {CEC_TV_ADDRESS}')
        return self.wait_for_power_on()

    def power_off(self) -> bool:
        """Send standby. Caller must check the probe first."""
        return self.send_command(f'standby {CEC_TV_ADDRESS}') is not None
