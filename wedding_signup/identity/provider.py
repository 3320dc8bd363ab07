# wedding_signup/identity/provider.py
import httpx
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .errors import IdentityProviderError, IdentityAlreadyExistsError, IdentityOutcomeUnknownError
from .models import OwnerIdentity, IdentityMetadata
from ..utils.retry import retry

logger = logging.getLogger(__name__)

# Connection never established, so the request cannot have been processed.
# Identity creation carries no idempotency key, so only these are retried.
_UNSENT_REQUEST_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)

_ALREADY_EXISTS_CODES = {"email_exists", "user_already_exists"}


class AbstractIdentityProvider(ABC):
    """Creates and deletes owner identities at an external auth provider."""

    @abstractmethod
    async def create_identity(
        self, email: str, credential: str, metadata: IdentityMetadata
    ) -> OwnerIdentity:
        """
        Create a confirmed identity.

        Raises:
            IdentityAlreadyExistsError: the email is already registered
            IdentityOutcomeUnknownError: the request was sent but the reply was lost
            IdentityProviderError: any other failure
        """
        pass

    @abstractmethod
    async def find_identity_by_email(self, email: str) -> Optional[OwnerIdentity]:
        """Return the identity registered under an email, if any."""
        pass

    @abstractmethod
    async def delete_identity(self, identity_id: str) -> None:
        """Delete an identity. Deleting one that no longer exists succeeds."""
        pass


class SupabaseIdentityProvider(AbstractIdentityProvider):
    """Identity provider backed by the Supabase GoTrue admin API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        service_url: str,
        service_key: str,
        retry_attempts: int = 3,
    ):
        self.client = client
        self.admin_users_url = f"{service_url.rstrip('/')}/auth/v1/admin/users"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        }
        self.retry_attempts = retry_attempts

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict):
            return str(body.get("msg") or body.get("message") or body.get("error_description") or body)
        return str(body)

    @staticmethod
    def _is_already_exists(response: httpx.Response, message: str) -> bool:
        try:
            code = response.json().get("error_code") or response.json().get("code")
        except (ValueError, AttributeError):
            code = None
        return code in _ALREADY_EXISTS_CODES or "already been registered" in message

    async def create_identity(
        self, email: str, credential: str, metadata: IdentityMetadata
    ) -> OwnerIdentity:
        payload: Dict[str, Any] = {
            "email": email,
            "password": credential,
            "email_confirm": True,
            "user_metadata": metadata.as_user_metadata(),
        }

        async def _post() -> httpx.Response:
            return await self.client.post(self.admin_users_url, json=payload, headers=self._headers)

        try:
            response = await retry(
                _post,
                attempts=self.retry_attempts,
                retry_on=_UNSENT_REQUEST_ERRORS,
                operation="identity create",
            )
        except _UNSENT_REQUEST_ERRORS as e:
            logger.error(f"Identity provider unreachable while creating identity: {e!r}")
            raise IdentityProviderError(f"Identity provider request failed: {e}") from e
        except httpx.RequestError as e:
            logger.error(f"Identity provider did not answer a sent create request: {e!r}")
            raise IdentityOutcomeUnknownError(f"Identity creation outcome unknown: {e}") from e

        if 200 <= response.status_code < 300:
            body = response.json()
            # Older GoTrue versions wrap the user object
            user = body.get("user", body) if isinstance(body, dict) else {}
            identity_id: Optional[str] = user.get("id")
            if not identity_id:
                raise IdentityProviderError("Identity provider returned no user id", response.status_code)
            logger.info(f"Created identity '{identity_id}'.")
            return OwnerIdentity(id=identity_id, email=user.get("email") or email)

        message = self._error_message(response)
        if self._is_already_exists(response, message):
            logger.warning("Identity creation rejected: email already registered.")
            raise IdentityAlreadyExistsError(message, response.status_code)

        logger.error(f"Identity provider error creating identity: {response.status_code} {message}")
        raise IdentityProviderError(message, response.status_code)

    async def find_identity_by_email(self, email: str) -> Optional[OwnerIdentity]:
        async def _list() -> httpx.Response:
            return await self.client.get(
                self.admin_users_url,
                params={"filter": email, "page": 1, "per_page": 50},
                headers=self._headers,
            )

        try:
            response = await retry(_list, attempts=self.retry_attempts, operation="identity lookup")
        except httpx.RequestError as e:
            raise IdentityProviderError(f"Identity provider request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise IdentityProviderError(self._error_message(response), response.status_code)

        body = response.json()
        users = body.get("users", []) if isinstance(body, dict) else body
        # The filter is a substring match; only an exact email counts
        for user in users or []:
            if (user.get("email") or "").lower() == email.lower():
                return OwnerIdentity(id=user["id"], email=user["email"])
        return None

    async def delete_identity(self, identity_id: str) -> None:
        async def _delete() -> httpx.Response:
            return await self.client.delete(f"{self.admin_users_url}/{identity_id}", headers=self._headers)

        try:
            # Deletion is idempotent, so any transport failure may be retried
            response = await retry(_delete, attempts=self.retry_attempts, operation="identity delete")
        except httpx.RequestError as e:
            raise IdentityProviderError(f"Identity provider request failed: {e}") from e

        if response.status_code == 404:
            logger.info(f"Identity '{identity_id}' already absent at provider.")
            return
        if not 200 <= response.status_code < 300:
            message = self._error_message(response)
            raise IdentityProviderError(message, response.status_code)
        logger.info(f"Deleted identity '{identity_id}'.")
