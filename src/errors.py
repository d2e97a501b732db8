"""Error taxonomy for payment webhook processing."""


class WebhookError(Exception):
    """Base class for webhook processing errors."""

    pass


class AuthenticationFailed(WebhookError):
    """Raised when an inbound event cannot be proven to come from Stripe."""

    pass


class WebhookSecretNotConfigured(AuthenticationFailed):
    """Raised when no signing secret is configured (server misconfiguration)."""

    pass


class MalformedEvent(WebhookError):
    """Raised when a recognized event kind is missing required fields."""

    pass


class OrderNotFound(WebhookError):
    """Raised when the order referenced by an event does not exist."""

    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class ConflictingState(WebhookError):
    """Raised when an event conflicts with the order's terminal status."""

    def __init__(self, order_id, current_status, requested_status):
        super().__init__(
            f"Order {order_id} is {current_status.value}, "
            f"refusing transition to {requested_status.value}"
        )
        self.order_id = order_id
        self.current_status = current_status
        self.requested_status = requested_status


class StoreUnavailable(WebhookError):
    """Raised on transient order store failures. Safe to retry."""

    pass


class NotificationFailed(WebhookError):
    """Raised when a customer notification could not be delivered."""

    pass
