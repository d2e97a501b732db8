"""Email service for sending transactional emails via the Resend API."""
import logging
import os
import re
from typing import Optional, Dict, Any

import requests
from jinja2 import (
    Environment,
    FileSystemLoader,
    TemplateNotFound as Jinja2TemplateNotFound,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates", "email"
)


class EmailConfigError(Exception):
    """Raised when email configuration is invalid."""

    pass


class TemplateNotFoundError(Exception):
    """Raised when email template is not found."""

    pass


class EmailResult:
    """Result of an email operation."""

    def __init__(self, success: bool, error: Optional[str] = None):
        """
        Initialize email result.

        Args:
            success: Whether the operation succeeded.
            error: Error message if failed.
        """
        self.success = success
        self.error = error


class EmailService:
    """Service for sending emails through the Resend HTTP API.

    Sending is optional infrastructure: without an API key the service
    reports itself as unconfigured and callers skip delivery.
    """

    # Email validation pattern
    EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

    def __init__(
        self,
        api_key: Optional[str],
        from_email: Optional[str],
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 5,
        template_dir: str = DEFAULT_TEMPLATE_DIR,
    ):
        """
        Initialize email service.

        Args:
            api_key: Resend API key. Empty disables sending.
            from_email: Sender, e.g. "Shop <sales@example.com>".
            api_url: Resend emails endpoint.
            timeout: Seconds to wait for the API before giving up.
            template_dir: Directory containing email templates.

        Raises:
            EmailConfigError: If configuration is invalid.
        """
        self._validate_config(api_key, from_email, timeout)

        self._api_key = api_key
        self._from_email = from_email
        self._api_url = api_url
        self._timeout = timeout

        self._template_env = Environment(
            loader=FileSystemLoader(template_dir), autoescape=True
        )

    def _validate_config(
        self, api_key: Optional[str], from_email: Optional[str], timeout: float
    ) -> None:
        """Validate API configuration."""
        errors = []

        if not timeout or timeout <= 0:
            errors.append("timeout must be positive")
        if api_key and not from_email:
            errors.append("from_email is required")

        if errors:
            raise EmailConfigError(f"Invalid configuration: {', '.join(errors)}")

    @property
    def is_configured(self) -> bool:
        """Check if an API key is available for sending."""
        return bool(self._api_key)

    def _validate_email(self, email: str) -> bool:
        """Validate email address format."""
        if not email:
            return False
        return bool(self.EMAIL_REGEX.match(email))

    def send_email(self, to_email: str, subject: str, body_html: str) -> EmailResult:
        """
        Send an HTML email, one attempt, bounded by the configured timeout.

        Args:
            to_email: Recipient email address.
            subject: Email subject.
            body_html: HTML body.

        Returns:
            EmailResult with success status.
        """
        if not self.is_configured:
            return EmailResult(success=False, error="Email sending is not configured")

        if not self._validate_email(to_email):
            return EmailResult(success=False, error="Invalid recipient email address")

        try:
            response = requests.post(
                self._api_url,
                json={
                    "from": self._from_email,
                    "to": [to_email],
                    "subject": subject,
                    "html": body_html,
                },
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self._api_key}",
                },
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            error_msg = str(e)
            logger.error("Failed to send email to %s: %s", to_email, error_msg)
            return EmailResult(success=False, error=error_msg)

        if not response.ok:
            error_msg = f"Resend error ({response.status_code}): {response.text}"
            logger.error("Failed to send email to %s: %s", to_email, error_msg)
            return EmailResult(success=False, error=error_msg)

        logger.info("Email sent successfully to %s", to_email)
        return EmailResult(success=True)

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        """
        Render an HTML email template.

        Args:
            template_name: Template name (without extension).
            context: Template context variables.

        Returns:
            Rendered HTML.

        Raises:
            TemplateNotFoundError: If the template does not exist.
        """
        try:
            template = self._template_env.get_template(f"{template_name}.html")
        except Jinja2TemplateNotFound as e:
            raise TemplateNotFoundError(f"Template not found: {template_name}") from e
        return template.render(**context)
