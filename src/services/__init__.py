"""Webhook pipeline services."""
from src.services.signature_verifier import StripeSignatureVerifier
from src.services.event_classifier import classify_event
from src.services.order_reconciler import (
    OrderReconciler,
    ReconciliationOutcome,
    ReconciliationResult,
)
from src.services.email_service import EmailService, EmailResult
from src.services.order_notifier import OrderNotifier

__all__ = [
    "StripeSignatureVerifier",
    "classify_event",
    "OrderReconciler",
    "ReconciliationOutcome",
    "ReconciliationResult",
    "EmailService",
    "EmailResult",
    "OrderNotifier",
]
