"""
Contact Service - support notifications and sender confirmations for the contact form
"""
import logging
from html import escape
from typing import Optional

from models.contact import ContactRequest
from models.settings import PlatformInfo
from services.email_service import EmailService
from services.settings_service import SettingsService

logger = logging.getLogger(__name__)

CONTACT_SUCCESS_MESSAGE = "Your message has been sent successfully. We will get back to you within 24-48 hours."


def build_support_email(contact: ContactRequest, sender_email: str, user_id: Optional[int], ip_address: Optional[str]) -> str:
    category = f"<p><strong>Category:</strong> {escape(contact.category)}</p>" if contact.category else ""
    user_line = f"<p><strong>User ID:</strong> {user_id}</p>" if user_id else ""
    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #3b82f6;">New Contact Form Submission</h2>
        <div style="background: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">
          <p><strong>Name:</strong> {escape(contact.name)}</p>
          <p><strong>Email:</strong> {escape(sender_email)}</p>
          {category}
          <p><strong>Subject:</strong> {escape(contact.subject)}</p>
          <p><strong>Message:</strong></p>
          <p style="white-space: pre-wrap; background: white; padding: 15px; border-radius: 4px;">{escape(contact.message)}</p>
          {user_line}
          <p style="font-size: 12px; color: #6b7280; margin-top: 20px;">IP Address: {escape(ip_address or "unknown")}</p>
        </div>
      </div>
    """


def build_confirmation_email(contact: ContactRequest, platform: PlatformInfo) -> str:
    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #3b82f6;">Thank you for contacting us!</h2>
        <p>Hi {escape(contact.name)},</p>
        <p>We've received your message and our support team will get back to you within 24-48 hours.</p>
        <div style="background: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">
          <p><strong>Your Message:</strong></p>
          <p style="white-space: pre-wrap; background: white; padding: 15px; border-radius: 4px;">{escape(contact.message)}</p>
        </div>
        <p>If you have any urgent questions, please call us at {escape(platform.support_phone)} or email us directly at {escape(platform.support_email)}</p>
        <p>Best regards,<br>The {escape(platform.site_name)} Team</p>
      </div>
    """


class ContactService:
    """
    Delivers contact form submissions.
    Email delivery is best effort: failures are logged, never raised.
    """

    def __init__(self, settings_service: SettingsService, email_service: EmailService):
        self.settings_service = settings_service
        self.email_service = email_service

    async def submit_contact(
        self,
        contact: ContactRequest,
        user_id: Optional[int] = None,
        user_email: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> dict:
        """
        Notify support (when email notifications are enabled) and confirm to the sender.

        Args:
            contact: Validated form payload
            user_id: Authenticated user's id, if any
            user_email: Authenticated user's email; replaces the form email
            ip_address: Client address for the support notification

        Returns:
            {"support_notified": bool, "confirmation_sent": bool}
        """
        sender_email = user_email or contact.email
        platform = await self.settings_service.get_platform_settings()
        notifications_enabled = await self.settings_service.are_email_notifications_enabled()

        support_notified = False
        if notifications_enabled:
            try:
                await self.email_service.send_email(
                    to=platform.support_email,
                    subject=f"[Contact Form] {contact.subject}",
                    html_content=build_support_email(contact, sender_email, user_id, ip_address),
                    reply_to=sender_email,
                )
                support_notified = True
            except Exception as e:
                logger.error(f"Error sending contact email: {e}")

        confirmation_sent = False
        try:
            await self.email_service.send_email(
                to=sender_email,
                subject=f"We received your message - {platform.site_name} Support",
                html_content=build_confirmation_email(contact, platform),
            )
            confirmation_sent = True
        except Exception as e:
            logger.error(f"Error sending confirmation email: {e}")

        return {"support_notified": support_notified, "confirmation_sent": confirmation_sent}
