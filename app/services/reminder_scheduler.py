"""
Daily Digest Scheduler

Publishes, once a day, the recurring tasks each user still has to do today.
Delivery (push, email, Telegram) belongs to the consumers of the digest topic.
"""

from datetime import date
from typing import Any, Callable, ContextManager, Dict, Optional

from sqlmodel import Session

from app import config
from app.dapr.client import DaprEventPublisher
from app.repositories.sql_repository import SQLModelRecurringTaskRepository
from app.services.errors import PublishError, RepositoryError
from app.services.routine_tracker import RoutineTracker
from app.utils.logger import configure_logging, get_logger
from app.utils.metrics import metrics_collector

logger = get_logger("daily-digest")


class DailyDigestScheduler:
    """Builds and publishes per-user digests of pending recurring tasks."""

    def __init__(
        self,
        session_factory: Callable[[], ContextManager[Session]],
        publisher: DaprEventPublisher,
        today_provider: Callable[[], date] = config.today,
        topic: str = config.DIGEST_TOPIC,
    ):
        self.session_factory = session_factory
        self.publisher = publisher
        self.today_provider = today_provider
        self.topic = topic

    def _tracker(self, session: Session, user_id: str) -> RoutineTracker:
        today = self.today_provider()
        return RoutineTracker(
            SQLModelRecurringTaskRepository(session),
            user_id,
            lambda: today,
            window_days=1,
            history_days=1,
            lookback_days=1,
            tz=config.APP_TIMEZONE,
        ).load()

    @staticmethod
    def build_digest(tracker: RoutineTracker) -> Optional[Dict[str, Any]]:
        """
        Digest payload for one user.

        Returns:
            None when every task due today is already done
        """
        pending = tracker.pending_today()
        if not pending:
            return None
        return {
            "user_id": tracker.user_id,
            "date": tracker.today().isoformat(),
            "count": len(pending),
            "pending": [
                {"id": rule.id, "title": rule.title, "frequency": rule.frequency.value}
                for rule in pending
            ],
        }

    @metrics_collector.time_operation("daily_digest_run_seconds")
    def run(self) -> int:
        """
        Publish a digest for every user with pending recurring tasks.

        A user whose data cannot be loaded or whose digest cannot be published
        is skipped.

        Returns:
            Number of digests published
        """
        run_log = logger.bind(date=self.today_provider().isoformat())
        with self.session_factory() as session:
            user_ids = SQLModelRecurringTaskRepository(session).list_user_ids()

        published = 0
        for user_id in user_ids:
            try:
                with self.session_factory() as session:
                    digest = self.build_digest(self._tracker(session, user_id))
                if digest is None:
                    continue
                self.publisher.publish_daily_digest(self.topic, digest)
            except (RepositoryError, PublishError) as e:
                run_log.error("daily_digest_failed", user_id=user_id, error=str(e))
                continue

            published += 1
            metrics_collector.increment_counter("digests_published_total")
            run_log.info("daily_digest_published", user_id=user_id, count=digest["count"])

        run_log.info("daily_digest_run_complete", users=len(user_ids), published=published)
        return published


def main():
    """Entry point for the scheduled daily digest job."""
    from app.db.config import engine

    configure_logging(config.LOG_LEVEL)
    publisher = DaprEventPublisher()
    try:
        scheduler = DailyDigestScheduler(lambda: Session(engine), publisher)
        scheduler.run()
    finally:
        publisher.close()


if __name__ == "__main__":
    main()
