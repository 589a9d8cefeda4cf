"""
Career Routes - Job applications with an optional or required resume upload
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from ..config import AppConfig
from ..dependencies import get_config, get_notifier
from ..email_service import Notifier, career_notification
from ..forms import read_form_body
from ..schemas import CareerSubmission, SubmissionResponse
from ..uploads import RESUME_FIELD, read_resume
from ..validation import parse_submission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Career"])


@router.post("/career", response_model=SubmissionResponse)
async def submit_career(
    request: Request,
    background_tasks: BackgroundTasks,
    config: AppConfig = Depends(get_config),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Validate a career application (multipart form, file field "resume")
    and email it with the resume attached.

    Field errors are reported before resume errors; neither sends anything.
    """
    body = await read_form_body(request)
    # The resume only ever comes from the checked upload, never from body fields
    fields = {k: v for k, v in body.fields.items() if k != RESUME_FIELD}
    submission = parse_submission(CareerSubmission, fields)

    resume = await read_resume(
        body.files_for(RESUME_FIELD),
        allowed_types=config.resume_allowed_types,
        max_bytes=config.resume_max_bytes,
        required=config.career_resume_required,
    )
    submission = submission.model_copy(update={"resume": resume})

    logger.info(
        f"📥 Career application from {submission.email} for '{submission.role}'"
        f" ({'with' if resume else 'without'} resume)"
    )
    await notifier.dispatch(career_notification(submission, config.brand_name), background_tasks)

    if resume:
        return SubmissionResponse(msg="Career form submitted with resume ✅")
    return SubmissionResponse(msg="Career form submitted ✅")
