import logging
from html import escape

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """
    Billing emails (subscription welcome, cancellation, failed payment) via SendGrid.
    Without SENDGRID_API_KEY / MAIL_FROM the message is only logged.
    """

    def __init__(self, api_key: str = None, sender_email: str = None):
        self.sendgrid_api_key = api_key
        self.sender_email = sender_email

        self.enabled = bool(self.sendgrid_api_key and self.sender_email)
        if not self.enabled:
            logger.warning("📧 Email service not configured. Missing SENDGRID_API_KEY or MAIL_FROM.")
        else:
            logger.info(f"📧 Email service configured and ready. Sender: {self.sender_email}")

    # ============================================================
    # ✅ Send Billing Email (synchronous for BackgroundTasks)
    # ============================================================
    def send_billing_email(self, to_email: str, subject: str, message: str) -> bool:
        if not self.enabled:
            # Development fallback (no SendGrid setup)
            logger.info(f"📨 [Mock Email] To: {to_email} | Subject: {subject}")
            logger.info(f"Message: {message}")
            return True

        html_content = f"""
        <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <p>{escape(message)}</p>
            <hr style="border:none; border-top:1px solid #eee; margin: 24px 0;">
            <p><small>This is an automated billing notification.</small></p>
        </div>
        """

        mail = Mail(
            from_email=self.sender_email,
            to_emails=to_email,
            subject=subject,
            html_content=html_content,
        )
        sg = SendGridAPIClient(self.sendgrid_api_key)
        response = sg.send(mail)
        logger.info(f"✅ Billing email sent to {to_email}. Status: {response.status_code}")
        return True


# ============================================================
# ✅ Global instance for app-wide import
# ============================================================
email_service = EmailService(settings.SENDGRID_API_KEY, settings.MAIL_FROM)
