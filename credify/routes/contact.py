"""
Contact Routes - Contact form submissions relayed by email
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from ..config import AppConfig
from ..dependencies import get_config, get_notifier
from ..email_service import Notifier, contact_notification
from ..forms import read_form_body
from ..schemas import ContactSubmission, SubmissionResponse
from ..validation import parse_submission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Contact"])


@router.post("/contact", response_model=SubmissionResponse)
async def submit_contact(
    request: Request,
    background_tasks: BackgroundTasks,
    config: AppConfig = Depends(get_config),
    notifier: Notifier = Depends(get_notifier),
):
    """Validate a contact form and email it to the team inbox"""
    body = await read_form_body(request)
    submission = parse_submission(ContactSubmission, body.fields)

    logger.info(f"📥 Contact submission from {submission.email} ({submission.loanType})")
    await notifier.dispatch(contact_notification(submission, config.brand_name), background_tasks)

    return SubmissionResponse(msg="Contact form submitted ✅")
