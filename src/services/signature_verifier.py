"""Stripe webhook signature verification."""
import logging
from typing import Optional

import stripe

from src.errors import AuthenticationFailed, WebhookSecretNotConfigured

logger = logging.getLogger(__name__)


class StripeSignatureVerifier:
    """
    Authenticates webhook bodies against the Stripe-Signature header.

    Header parsing, HMAC-SHA256 computation, constant-time comparison and
    the timestamp tolerance check are delegated to the stripe library.
    Fails closed: an unconfigured secret rejects every request.
    """

    def __init__(self, webhook_secret: Optional[str], tolerance: Optional[int] = 300):
        """
        Initialize verifier.

        Args:
            webhook_secret: Endpoint signing secret (whsec_...).
            tolerance: Maximum accepted age of the signature timestamp in
                seconds. 0 or None disables the replay window.
        """
        self._webhook_secret = webhook_secret
        self._tolerance = tolerance or None

    @property
    def is_configured(self) -> bool:
        """Check if a signing secret is available."""
        return bool(self._webhook_secret)

    def verify(self, payload: bytes, signature: Optional[str]) -> None:
        """
        Verify that payload was signed by Stripe with the configured secret.

        Args:
            payload: Exact raw request body.
            signature: Value of the Stripe-Signature header.

        Raises:
            WebhookSecretNotConfigured: If no signing secret is configured.
            AuthenticationFailed: If the header is missing, malformed, stale
                or does not match the body.
        """
        if not self.is_configured:
            raise WebhookSecretNotConfigured("Webhook secret not configured")

        if not signature:
            raise AuthenticationFailed("No signature")

        try:
            body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        except UnicodeDecodeError as e:
            raise AuthenticationFailed("Payload is not valid UTF-8") from e

        try:
            stripe.WebhookSignature.verify_header(
                body, signature, self._webhook_secret, self._tolerance
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Stripe signature verification failed: %s", e)
            raise AuthenticationFailed("Invalid signature") from e
