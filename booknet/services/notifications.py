"""
Email Notifications

Fire-and-forget emails about accounts and loans:
- welcome email on registration
- owner: a book was borrowed, a book was returned
- borrower: the owner approved the return

Routers schedule these as FastAPI BackgroundTasks, so they run after the
response is sent. A delivery failure is logged and goes no further: no
lending decision ever waits on, or depends on, an email.

When mail is disabled (the default) messages are logged instead of sent.
"""

import logging
import smtplib
from email.message import EmailMessage

from booknet.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailNotifier:
    """
    Sends plain-text emails over SMTP.

    Args:
        settings: Mail settings (host, port, credentials, sender)
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def send(self, to: str, subject: str, body: str) -> bool:
        """
        Send one email.

        Returns:
            True if the message was handed to the SMTP server (or logged
            while mail is disabled), False if delivery failed
        """
        if not self.settings.mail_enabled:
            logger.info(f"Mail disabled, not sending '{subject}' to {to}")
            return True

        message = EmailMessage()
        message["From"] = self.settings.mail_from
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        try:
            with smtplib.SMTP(self.settings.mail_host, self.settings.mail_port, timeout=10) as smtp:
                if self.settings.mail_use_tls:
                    smtp.starttls()
                if self.settings.mail_username:
                    smtp.login(self.settings.mail_username, self.settings.mail_password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send '{subject}' to {to}: {e}")
            return False

        logger.info(f"Sent '{subject}' to {to}")
        return True

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------
    def send_welcome(self, to: str, username: str) -> bool:
        return self.send(
            to,
            "Welcome to the Book Network",
            f"Hello {username},\n\n"
            "Your account is ready. Publish your books and borrow from other members.\n",
        )

    def notify_borrowed(self, owner_email: str, title: str, borrower: str) -> bool:
        return self.send(
            owner_email,
            f"'{title}' was borrowed",
            f"{borrower} borrowed your book '{title}'.\n",
        )

    def notify_returned(self, owner_email: str, title: str, borrower: str) -> bool:
        return self.send(
            owner_email,
            f"'{title}' was returned",
            f"{borrower} returned your book '{title}'. "
            "Approve the return once you have it back.\n",
        )

    def notify_return_approved(self, borrower_email: str, title: str) -> bool:
        return self.send(
            borrower_email,
            f"Return of '{title}' approved",
            f"The owner confirmed your return of '{title}'. Thanks for sharing!\n",
        )
