# wedding_signup/payments/gateway.py
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict

import stripe

from .errors import PaymentGatewayError
from .models import CheckoutSession, CheckoutSessionCreate

logger = logging.getLogger(__name__)


class AbstractPaymentGateway(ABC):

    @abstractmethod
    async def create_checkout_session(
        self, request: CheckoutSessionCreate, idempotency_key: str
    ) -> CheckoutSession:
        """
        Create a hosted checkout session.

        The same idempotency_key must be sent on every retry of one logical
        request so the provider never creates two sessions for it.
        """
        pass

    @abstractmethod
    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        pass

    @abstractmethod
    async def expire_checkout_session(self, session_id: str) -> None:
        """Close an open session so it can no longer be paid."""
        pass


def build_checkout_params(request: CheckoutSessionCreate) -> Dict[str, Any]:
    """Checkout session parameters for a single one-off card payment."""
    return {
        "mode": "payment",
        "payment_method_types": ["card"],
        "line_items": [{
            "price_data": {
                "currency": request.currency,
                "product_data": {
                    "name": request.product_name,
                    "description": request.product_description,
                },
                "unit_amount": request.amount_cents,
            },
            "quantity": 1,
        }],
        "customer_email": request.customer_email,
        "success_url": request.success_url,
        "cancel_url": request.cancel_url,
        "allow_promotion_codes": True,
        "billing_address_collection": "auto",
        "metadata": dict(request.metadata),
    }


class StripePaymentGateway(AbstractPaymentGateway):
    """
    Payment gateway backed by the official Stripe SDK.

    The SDK is synchronous, so each call runs in a worker thread. Network
    retries are left to the SDK; a POST is replayed under the idempotency key
    it was first sent with.
    """

    def __init__(self, secret_key: str, max_network_retries: int = 3):
        self._api_key = secret_key
        stripe.max_network_retries = max_network_retries

    async def _call(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args, api_key=self._api_key, **kwargs)
        except stripe.StripeError as e:
            message = e.user_message or str(e)
            logger.error(f"Payment provider error on {operation}: status {e.http_status} - {message}")
            raise PaymentGatewayError(message, e.http_status) from e

    @staticmethod
    def _to_session(session: Any) -> CheckoutSession:
        customer = getattr(session, "customer", None)
        if customer is not None and not isinstance(customer, str):
            customer = customer.id
        metadata = getattr(session, "metadata", None) or {}
        return CheckoutSession(
            id=session.id,
            url=getattr(session, "url", None),
            status=getattr(session, "status", None),
            payment_status=getattr(session, "payment_status", None),
            customer_id=customer,
            metadata={key: str(value) for key, value in metadata.items()},
        )

    async def create_checkout_session(
        self, request: CheckoutSessionCreate, idempotency_key: str
    ) -> CheckoutSession:
        session = await self._call(
            "checkout create",
            stripe.checkout.Session.create,
            idempotency_key=idempotency_key,
            **build_checkout_params(request),
        )
        logger.info(f"Created checkout session '{session.id}'.")
        return self._to_session(session)

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        session = await self._call("checkout retrieve", stripe.checkout.Session.retrieve, session_id)
        return self._to_session(session)

    async def expire_checkout_session(self, session_id: str) -> None:
        await self._call(
            "checkout expire",
            stripe.checkout.Session.expire,
            session_id,
            idempotency_key=f"expire-{session_id}",
        )
        logger.info(f"Expired checkout session '{session_id}'.")
