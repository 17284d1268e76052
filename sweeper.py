# sweeper.py
import logging

from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

JOB_ID = "sweep_expired_sessions"


class Sweeper:
    """Runs store.sweep() every `interval` seconds on an APScheduler background scheduler."""

    def __init__(self, store, interval: float):
        self.store = store
        self.interval = max(0.05, float(interval))
        self.scheduler = BackgroundScheduler(daemon=True)
        self.scheduler.add_job(
            func=self.run_once,
            trigger="interval",
            seconds=self.interval,
            id=JOB_ID,
            name="Delete expired sessions",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Cleanup job every %.0fs, ttl %.0fs", self.interval, self.store.ttl)

    def stop(self, wait: bool = False) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def run_once(self) -> list:
        reclaimed = self.store.sweep()
        if reclaimed:
            logger.info("Cleanup removed %d expired session(s)", len(reclaimed))
        return reclaimed
