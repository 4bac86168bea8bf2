import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Protocol

import stripe

from app.core.config import PaymentConfig

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    success: bool
    payment_intent_id: Optional[str] = None
    client_secret: Optional[str] = None
    error_message: Optional[str] = None


class PaymentGateway(Protocol):
    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        description: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> PaymentResult: ...

    def refund_payment(self, payment_intent_id: str, amount: Optional[Decimal] = None) -> PaymentResult: ...

    def cancel_payment_intent(self, payment_intent_id: str) -> PaymentResult: ...


def to_minor_units(amount: Decimal) -> int:
    """Decimal currency amount → integer cents."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripePaymentService:
    """
    Deposit collection through Stripe PaymentIntents.

    With no secret key configured the service runs in mock mode and hands
    back `pi_mock_*` identifiers, so local setups can book deposit branches.
    """

    def __init__(self, config: PaymentConfig):
        self.config = config
        self.client = stripe.StripeClient(config.secret_key) if config.secret_key else None

    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        description: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> PaymentResult:
        if self.client is None:
            logger.warning("Stripe secret key not configured; returning mock PaymentIntent")
            intent_id = f"pi_mock_{uuid.uuid4().hex}"
            return PaymentResult(
                success=True,
                payment_intent_id=intent_id,
                client_secret=f"{intent_id}_secret_{uuid.uuid4().hex}",
            )

        try:
            intent = self.client.payment_intents.create(
                params={
                    "amount": to_minor_units(amount),
                    "currency": (currency or self.config.currency).lower(),
                    "description": description,
                    "metadata": metadata or {},
                    "automatic_payment_methods": {"enabled": True},
                }
            )
        except stripe.StripeError as e:
            logger.error("Stripe error creating PaymentIntent: %s", e)
            return PaymentResult(success=False, error_message=e.user_message or str(e))

        logger.info("PaymentIntent created: %s", intent.id)
        return PaymentResult(
            success=True,
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
        )

    def refund_payment(self, payment_intent_id: str, amount: Optional[Decimal] = None) -> PaymentResult:
        if self.client is None:
            logger.warning("Stripe secret key not configured; mock refund for %s", payment_intent_id)
            return PaymentResult(success=True, payment_intent_id=payment_intent_id)

        params: dict = {"payment_intent": payment_intent_id}
        if amount is not None:
            params["amount"] = to_minor_units(amount)
        try:
            refund = self.client.refunds.create(params=params)
        except stripe.StripeError as e:
            logger.error("Stripe error refunding %s: %s", payment_intent_id, e)
            return PaymentResult(success=False, error_message=e.user_message or str(e))

        logger.info("Refund %s created for %s", refund.id, payment_intent_id)
        return PaymentResult(success=True, payment_intent_id=payment_intent_id)

    def cancel_payment_intent(self, payment_intent_id: str) -> PaymentResult:
        """Void an intent that never got a booking; nothing was captured yet."""
        if self.client is None:
            logger.warning("Stripe secret key not configured; mock cancel for %s", payment_intent_id)
            return PaymentResult(success=True, payment_intent_id=payment_intent_id)

        try:
            self.client.payment_intents.cancel(payment_intent_id)
        except stripe.StripeError as e:
            logger.error("Stripe error cancelling PaymentIntent %s: %s", payment_intent_id, e)
            return PaymentResult(success=False, error_message=e.user_message or str(e))

        logger.info("PaymentIntent cancelled: %s", payment_intent_id)
        return PaymentResult(success=True, payment_intent_id=payment_intent_id)
