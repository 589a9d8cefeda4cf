"""
Loan Application Routes
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from ..config import AppConfig
from ..dependencies import get_config, get_notifier
from ..email_service import Notifier, loan_application_notification
from ..forms import read_form_body
from ..schemas import LoanApplication, SubmissionResponse
from ..validation import parse_submission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Loan Applications"])


@router.post("/apply", response_model=SubmissionResponse)
async def submit_loan_application(
    request: Request,
    background_tasks: BackgroundTasks,
    config: AppConfig = Depends(get_config),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Relay a loan application. fullName, mobile, email and loanType are
    required; the descriptive fields are included when present.
    """
    body = await read_form_body(request)
    application = parse_submission(LoanApplication, body.fields)

    logger.info(
        f"📥 Loan application {application.referenceId or '(no reference)'}"
        f" - {application.loanType}"
    )
    await notifier.dispatch(
        loan_application_notification(application, config.brand_name), background_tasks
    )

    return SubmissionResponse(msg="Loan application submitted ✅")
