"""Background scheduling for learning passes and channel scans."""

from datetime import datetime, timedelta
from typing import Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from learnbot.constants import (
    CHANNEL_SCAN_INTERVAL_HOURS,
    LEARNING_FIRST_RUN_DELAY_MINUTES,
    LEARNING_INTERVAL_HOURS,
)
from learnbot.logger import logger


class LearningScheduler:
    """Runs the history miner and channel scanner on fixed intervals."""

    def __init__(
        self,
        run_learning: Callable[[], int],
        scan_channels: Optional[Callable[[], int]] = None,
        scheduler: Optional[BackgroundScheduler] = None,
        learning_interval_hours: int = LEARNING_INTERVAL_HOURS,
        first_run_delay_minutes: int = LEARNING_FIRST_RUN_DELAY_MINUTES,
        scan_interval_hours: int = CHANNEL_SCAN_INTERVAL_HOURS,
    ):
        self.run_learning = run_learning
        self.scan_channels = scan_channels
        self.scheduler = scheduler or BackgroundScheduler()
        self.learning_interval_hours = learning_interval_hours
        self.first_run_delay_minutes = first_run_delay_minutes
        self.scan_interval_hours = scan_interval_hours

    def _job_error_handler(self, event):
        # The next interval still fires; a failed run only gets logged
        logger.error("Scheduled job %s failed: %s", event.job_id, event.exception)

    def start(self):
        first_run = datetime.now() + timedelta(minutes=self.first_run_delay_minutes)
        self.scheduler.add_job(
            self.run_learning,
            trigger=IntervalTrigger(hours=self.learning_interval_hours),
            id="history_learning",
            next_run_time=first_run,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if self.scan_channels is not None:
            self.scheduler.add_job(
                self.scan_channels,
                trigger=IntervalTrigger(hours=self.scan_interval_hours),
                id="channel_scan",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        self.scheduler.add_listener(self._job_error_handler, EVENT_JOB_ERROR)
        self.scheduler.start()
        logger.info(
            "Learning scheduled every %sh (first run at %s), channel scans every %sh",
            self.learning_interval_hours,
            first_run.isoformat(timespec="seconds"),
            self.scan_interval_hours,
        )

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
