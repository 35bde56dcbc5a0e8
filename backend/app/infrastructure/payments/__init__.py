"""
Payments Infrastructure Module

Stripe payment processing and the renewal payment gateways.
"""

from app.infrastructure.payments.gateways import (
    AlwaysApprovePaymentGateway,
    StripePaymentGateway,
    create_payment_gateway,
)
from app.infrastructure.payments.stripe_service import StripeService

__all__ = [
    "AlwaysApprovePaymentGateway",
    "StripePaymentGateway",
    "StripeService",
    "create_payment_gateway",
]
