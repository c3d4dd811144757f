"""
Outbound email: SMTP when configured, otherwise logged as simulated.
"""
import smtplib
from html import escape
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, Optional

from fastapi import BackgroundTasks

from dental_lab.core.config import settings
from dental_lab.core.logging import get_logger

logger = get_logger(__name__)


class EmailService:
    """Sends transactional emails.

    The ``send_*_email`` helpers log failures instead of raising, and callers
    hand them to ``dispatch`` so they run after the response is sent.
    """

    def __init__(
        self,
        server: Optional[str] = settings.SMTP_SERVER,
        port: int = settings.SMTP_PORT,
        username: Optional[str] = settings.SMTP_USERNAME,
        password: Optional[str] = settings.SMTP_PASSWORD,
        use_tls: bool = settings.SMTP_USE_TLS,
        sender: str = settings.FROM_EMAIL,
        frontend_url: str = settings.FRONTEND_URL,
    ):
        self.server = server
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.frontend_url = frontend_url.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.server)

    def send_email(self, to: str, subject: str, html: str, text: Optional[str] = None) -> None:
        """Send a message; raises ``smtplib.SMTPException``/``OSError`` on failure."""
        if not self.is_configured:
            logger.info(f"[EMAIL] Simulated email to {to}: {subject}")
            return

        msg = MIMEMultipart("alternative")
        msg["To"] = to
        msg["From"] = self.sender
        msg["Subject"] = subject
        if text:
            msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        with smtplib.SMTP(self.server, self.port, timeout=10) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)
        logger.info(f"[EMAIL] Sent to {to}: {subject}")

    def _deliver(self, to: Optional[str], subject: str, html: str) -> bool:
        if not to:
            return False
        try:
            self.send_email(to, subject, html)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"[EMAIL] Failed to send '{subject}' to {to}: {e}")
            return False

    # Template helpers

    def send_welcome_email(self, to: str, first_name: str) -> bool:
        html = (
            f"<h2>Welcome, {escape(first_name)}!</h2>"
            "<p>Your account has been created.</p>"
            f"<p><a href=\"{self.frontend_url}/login\">Log in</a> to get started.</p>"
        )
        return self._deliver(to, "Welcome to the Dental Lab portal", html)

    def send_password_reset_email(self, to: str, reset_token: str) -> bool:
        link = f"{self.frontend_url}/reset-password?token={reset_token}"
        html = (
            "<h2>Password Reset</h2>"
            "<p>A password reset was requested for your account.</p>"
            f"<p><a href=\"{link}\">Reset your password</a>. The link expires in one hour.</p>"
            "<p>If you did not request this, you can ignore this email.</p>"
        )
        return self._deliver(to, "Password reset request", html)

    def send_case_assignment_email(self, to: str, patient_name: str, case_number: str) -> bool:
        html = (
            "<h2>Case Assignment</h2>"
            f"<p>You have been assigned to case: <strong>{escape(patient_name)}</strong></p>"
            f"<p>Case Number: {escape(case_number)}</p>"
            "<p>Please log in to the system to view details.</p>"
        )
        return self._deliver(to, f"New Case Assignment: {case_number}", html)

    def send_case_completion_email(self, to: str, patient_name: str, case_number: str) -> bool:
        html = (
            "<h2>Case Completed</h2>"
            f"<p>Case <strong>{escape(patient_name)}</strong> has been completed.</p>"
            f"<p>Case Number: {escape(case_number)}</p>"
        )
        return self._deliver(to, f"Case Completed: {case_number}", html)

    def send_invoice_email(self, to: str, invoice_number: str, amount: str) -> bool:
        html = (
            "<h2>Invoice Generated</h2>"
            f"<p>Invoice Number: <strong>{escape(invoice_number)}</strong></p>"
            f"<p>Amount Due: <strong>{escape(amount)}</strong></p>"
        )
        return self._deliver(to, f"Invoice: {invoice_number}", html)

    def send_payment_confirmation_email(self, to: str, invoice_number: str, amount: str) -> bool:
        html = (
            "<h2>Payment Received</h2>"
            f"<p>Invoice <strong>{escape(invoice_number)}</strong> has been paid in full.</p>"
            f"<p>Amount: <strong>{escape(amount)}</strong></p>"
            "<p>Thank you for your business.</p>"
        )
        return self._deliver(to, f"Payment Confirmation: {invoice_number}", html)


def dispatch(background_tasks: Optional[BackgroundTasks], send: Callable[..., bool], *args) -> None:
    """Queue ``send`` on the request's background tasks, or call it inline when there are none."""
    if background_tasks is not None:
        background_tasks.add_task(send, *args)
    else:
        send(*args)
