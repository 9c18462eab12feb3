import logging

from fastapi import BackgroundTasks
from starlette.concurrency import run_in_threadpool
from tenacity import AsyncRetrying, before_sleep_log, stop_after_attempt, wait_exponential

from app.core.config import settings
from app.core.exceptions import DependencyFailure
from app.core.logger import logger
from app.services.notifications.email_service import EmailService, SendResult, TrackerEmailData


class NotificationDispatcher:
    """
    Sends tracker confirmations outside the request/response cycle.

    ``enqueue`` schedules delivery to run after the response is sent;
    ``deliver`` retries with exponential backoff and only logs the outcome,
    so a mail failure never reaches the caller or undoes the tracker.
    """

    def __init__(
        self,
        mailer: EmailService,
        max_attempts: int = settings.EMAIL_MAX_ATTEMPTS,
        min_wait: float = settings.EMAIL_RETRY_MIN_SECONDS,
        max_wait: float = settings.EMAIL_RETRY_MAX_SECONDS,
    ):
        self.mailer = mailer
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait

    def enqueue(self, background_tasks: BackgroundTasks, recipient: str, data: TrackerEmailData) -> None:
        background_tasks.add_task(self.deliver, recipient, data)

    async def _send_once(self, recipient: str, data: TrackerEmailData) -> SendResult:
        result = await run_in_threadpool(self.mailer.send, recipient, data)
        if not result.success:
            raise DependencyFailure(result.error or "Unknown mail transport error")
        return result

    async def deliver(self, recipient: str, data: TrackerEmailData) -> SendResult:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.min_wait, min=self.min_wait, max=self.max_wait),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    result = await self._send_once(recipient, data)
        except Exception as e:
            logger.error(f"Failed to send trip tracker email to {recipient} for {data.tracker_id}: {e}")
            return SendResult(success=False, error=str(e))

        logger.info(f"Trip tracker email sent successfully to {recipient}: {result.message_id}")
        return result


def get_notification_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency; tests override it with a fake mailer."""
    return NotificationDispatcher(EmailService())
