# wedding_signup/notifications/dispatcher.py
import asyncio
import logging
from typing import Optional, Set

from .email_client import AbstractEmailClient
from .models import WelcomeContext
from .templates import render_welcome_email

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Fire-and-forget delivery of transactional email.

    send() schedules delivery on the running loop and returns immediately.
    Delivery failures are logged and never reach the caller, whose account
    is already committed by the time a notification goes out.
    """

    def __init__(self, email_client: Optional[AbstractEmailClient]):
        self.email_client = email_client
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def send(
        self,
        owner_email: str,
        tenant_slug: str,
        locale: str,
        credential_context: WelcomeContext,
    ) -> None:
        try:
            task = asyncio.get_running_loop().create_task(
                self._deliver(owner_email, tenant_slug, locale, credential_context)
            )
        except Exception as e:
            logger.error(f"Email: could not schedule welcome email for '{tenant_slug}': {e}", exc_info=True)
            return
        # Strong reference until done, otherwise the loop may drop the task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(
        self,
        owner_email: str,
        tenant_slug: str,
        locale: str,
        credential_context: WelcomeContext,
    ) -> None:
        if self.email_client is None:
            logger.warning(f"Email: service not configured, skipping welcome email for '{tenant_slug}'.")
            return
        try:
            message = render_welcome_email(owner_email, tenant_slug, locale, credential_context)
            message_id = await self.email_client.send(message)
            logger.info(f"Email: welcome email sent for '{tenant_slug}' ({locale}), id: {message_id}")
        except Exception as e:
            logger.error(f"Email: welcome email for '{tenant_slug}' failed: {e}", exc_info=True)

    async def aclose(self, timeout: float = 5.0) -> None:
        """Wait briefly for in-flight deliveries, then cancel the rest."""
        if not self._pending:
            return
        pending = list(self._pending)
        logger.info(f"Email: draining {len(pending)} pending notification(s).")
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning(f"Email: cancelled {len(still_running)} notification(s) at shutdown.")
