"""
Contact Router - public contact form
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_optional_user
from database import get_db
from database_models import User
from models.contact import ContactRequest
from services.contact_service import ContactService, CONTACT_SUCCESS_MESSAGE
from services.email_service import EmailService, get_email_service
from services.settings_service import SettingsService
from backend.utils.responses import success_response, error_response

logger = logging.getLogger(__name__)

# Create router
contact_router = APIRouter(prefix="/api", tags=["contact"])


def get_client_ip(request: Request) -> Optional[str]:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


@contact_router.post("/contact")
async def submit_contact_form(
    contact: ContactRequest,
    request: Request,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Send a contact form submission to support and confirm to the sender"""
    try:
        contact_service = ContactService(SettingsService(db), email_service)
        await contact_service.submit_contact(
            contact,
            user_id=current_user.id if current_user else None,
            user_email=current_user.email if current_user else None,
            ip_address=get_client_ip(request),
        )
        return success_response(message=CONTACT_SUCCESS_MESSAGE)
    except Exception as e:
        logger.error(f"Error submitting contact form: {e}", exc_info=True)
        return error_response(
            "CONTACT_FAILED",
            status=500,
            message="Failed to send your message. Please try again later.",
        )
