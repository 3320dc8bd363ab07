# wedding_signup/notifications/email_client.py
import httpx
import logging
from abc import ABC, abstractmethod
from typing import Optional

from .models import EmailMessage

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AbstractEmailClient(ABC):

    @abstractmethod
    async def send(self, message: EmailMessage) -> Optional[str]:
        """Deliver a message and return the provider's message id."""
        pass


class ResendEmailClient(AbstractEmailClient):
    """Transactional email over the Resend REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        sender: str,
        api_base: str = "https://api.resend.com",
    ):
        self.client = client
        self.sender = sender
        self.emails_url = f"{api_base.rstrip('/')}/emails"
        self._headers = {"Authorization": f"Bearer {api_key}"}

    async def send(self, message: EmailMessage) -> Optional[str]:
        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        try:
            response = await self.client.post(self.emails_url, json=payload, headers=self._headers)
        except httpx.RequestError as e:
            raise EmailDeliveryError(f"Email provider request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise EmailDeliveryError(response.text, response.status_code)
        return response.json().get("id")
