"""Dependency injection container."""
from dependency_injector import containers, providers

from src.repositories.order_repository import OrderRepository

from src.services.signature_verifier import StripeSignatureVerifier
from src.services.order_reconciler import OrderReconciler
from src.services.email_service import EmailService
from src.services.order_notifier import OrderNotifier


class Container(containers.DeclarativeContainer):
    """
    Application dependency injection container.

    Uses dependency-injector for managing service dependencies
    and lifecycle.

    Usage:
        container = Container()
        container.config.from_dict(settings)
        container.db_session.override(db.session)

        reconciler = container.order_reconciler()
    """

    # Configuration
    config = providers.Configuration()

    # Database session - must be overridden with actual db.session
    db_session = providers.Dependency()

    # ==================
    # Repositories
    # ==================

    order_repository = providers.Factory(
        OrderRepository,
        session=db_session
    )

    # ==================
    # Services
    # ==================

    signature_verifier = providers.Factory(
        StripeSignatureVerifier,
        webhook_secret=config.stripe_webhook_secret,
        tolerance=config.stripe_signature_tolerance,
    )

    order_reconciler = providers.Factory(
        OrderReconciler,
        order_repository=order_repository,
        allow_paid_override=config.paid_overrides_terminal,
    )

    # ==================
    # Notifications
    # ==================

    email_service = providers.Singleton(
        EmailService,
        api_key=config.resend_api_key,
        from_email=config.email_from,
        api_url=config.resend_api_url,
        timeout=config.notification_timeout,
    )

    order_notifier = providers.Factory(
        OrderNotifier,
        order_repository=order_repository,
        email_service=email_service,
        currency=config.order_currency,
    )
