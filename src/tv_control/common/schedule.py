"""
TV Control - Cron Schedule Registration

Registers the dispatcher's recurring `play` and `stop` runs (and optionally a
boot-time `play`) in the user's crontab. Existing entries for the same
dispatcher path and verb are removed before the fresh ones are added, so
registration can be repeated without accumulating duplicates.
"""

import logging
import shlex
from pathlib import Path
from typing import Dict, Optional

from crontab import CronTab

logger = logging.getLogger(__name__)

PLAY_SCHEDULE = '0 6 * * *'  # 06:00 every day
STOP_SCHEDULE = '0 23 * * *'  # 23:00 every day

SCHEDULE = {
    'play': PLAY_SCHEDULE,
    'stop': STOP_SCHEDULE,
}

JOB_COMMENT = 'tv-control'
AUTOSTART_COMMENT = 'tv-control-autostart'


def open_crontab(tabfile: Optional[Path] = None) -> CronTab:
    """Open the current user's crontab, or a tab file when one is given."""
    if tabfile is not None:
        return CronTab(tabfile=str(tabfile))
    return CronTab(user=True)


def build_job_command(dispatcher: Path, verb: str, log_file: Path) -> str:
    return f'{shlex.quote(str(dispatcher))} {verb} >> {shlex.quote(str(log_file))} 2>&1'


def remove_jobs(cron: CronTab, dispatcher: Path, verb: str) -> int:
    """Remove every job whose command runs `<dispatcher> <verb>`."""
    matching = list(cron.find_command(f'{shlex.quote(str(dispatcher))} {verb}'))
    for job in matching:
        cron.remove(job)
    return len(matching)


def register_schedule(
    dispatcher: Path,
    log_file: Path,
    autostart: bool = False,
    cron: Optional[CronTab] = None,
) -> Dict[str, str]:
    """
    Install the play/stop entries for dispatcher, replacing any existing ones.

    Args:
        dispatcher: Absolute path of the dispatcher executable
        log_file: File that scheduled runs append their output to
        autostart: Also register an @reboot entry that runs `play`
        cron: CronTab to edit (defaults to the current user's crontab)

    Returns:
        Mapping of verb to the schedule it was registered with.
    """
    cron = cron if cron is not None else open_crontab()
    registered = {}

    for verb, schedule in SCHEDULE.items():
        removed = remove_jobs(cron, dispatcher, verb)
        if removed:
            logger.debug(f"Removed {removed} existing '{verb}' entr{'y' if removed == 1 else 'ies'}")

        job = cron.new(command=build_job_command(dispatcher, verb, log_file), comment=JOB_COMMENT)
        job.setall(schedule)
        registered[verb] = schedule

    # The boot entry shares the `play` command, so it was removed above
    if autostart:
        job = cron.new(command=build_job_command(dispatcher, 'play', log_file), comment=AUTOSTART_COMMENT)
        job.every_reboot()
        registered['autostart'] = '@reboot'

    cron.write()
    return registered
