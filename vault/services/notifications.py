"""Best-effort email notifications.

State transitions (account created, reset requested) hand a job to the
``NotificationDispatcher`` and return immediately. A bounded pool of worker
tasks drains the queue; failures are logged and never reach the caller.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from vault.services.email import EmailSender, Letter
from vault.utils.validation import mask_email

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[None]]


class NotificationSink(Protocol):
    async def send_verification_email(self, email: str, code: str) -> None: ...

    async def send_password_reset_email(self, email: str, token: str) -> None: ...


class EmailNotifier:
    """Composes verification and password reset letters."""

    def __init__(self, sender: EmailSender, base_url: str, reset_token_ttl_seconds: int) -> None:
        self.sender = sender
        self.base_url = base_url.rstrip("/")
        self.reset_token_ttl_seconds = reset_token_ttl_seconds

    async def send_verification_email(self, email: str, code: str) -> None:
        verify_url = f"{self.base_url}/accounts/verification?code={code}"
        letter = Letter(
            to=email,
            subject="Vault: verify your email",
            body=(
                f"Click the link below to verify your email:\n\n"
                f"{verify_url}\n\n"
                f"If you did not create an account, ignore this email."
            ),
        )
        letter.validate()
        await self.sender.send(letter)
        logger.info("Verification email sent to %s", mask_email(email))

    async def send_password_reset_email(self, email: str, token: str) -> None:
        reset_url = f"{self.base_url}/accounts/password/reset?token={token}"
        minutes = self.reset_token_ttl_seconds // 60
        letter = Letter(
            to=email,
            subject="Vault: reset your password",
            body=(
                f"Use the link below to set a new password:\n\n"
                f"{reset_url}\n\n"
                f"This link expires in {minutes} minutes.\n\n"
                f"If you did not request a password reset, ignore this email."
            ),
        )
        letter.validate()
        await self.sender.send(letter)
        logger.info("Password reset email sent to %s", mask_email(email))


class NotificationDispatcher:
    """Bounded queue of fire-and-forget jobs consumed by ``workers`` tasks.

    ``submit`` never blocks: when the queue is full the job is dropped with a
    warning, so a slow mail server cannot back-pressure account operations.
    """

    def __init__(self, workers: int = 4, queue_size: int = 1000) -> None:
        self.workers = workers
        self._queue: asyncio.Queue[tuple[str, Job]] = asyncio.Queue(maxsize=queue_size)
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"notification-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info("Notification dispatcher started with %d workers", self.workers)

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("Notification dispatcher stopped")

    def submit(self, description: str, job: Job) -> bool:
        """Queue ``job``. Returns False if it was dropped."""
        try:
            self._queue.put_nowait((description, job))
        except asyncio.QueueFull:
            logger.warning("Notification queue full, dropping %s", description)
            return False
        return True

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        while True:
            description, job = await self._queue.get()
            try:
                await job()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Notification worker %d failed to %s", index, description)
            finally:
                self._queue.task_done()
