# wedding_signup/payments/__init__.py
"""
Hosted checkout sessions at the external payment provider.
"""

from .models import CheckoutSessionCreate, CheckoutSession
from .errors import PaymentGatewayError
from .gateway import AbstractPaymentGateway, StripePaymentGateway, build_checkout_params

__all__ = [
    "CheckoutSessionCreate",
    "CheckoutSession",
    "PaymentGatewayError",
    "AbstractPaymentGateway",
    "StripePaymentGateway",
    "build_checkout_params",
]
