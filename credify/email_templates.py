"""
HTML Email Templates
Notification bodies for each form submission. Every user-supplied value is
escaped before it is placed in markup.
"""

from typing import Optional

from .schemas import CareerSubmission, ContactSubmission, LoanApplication
from .utils.sanitization import sanitize_multiline, sanitize_string

THEME = {
    "primary": "#1d4ed8",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "background": "#f8fafc",
    "border": "#e2e8f0",
}

LOAN_DETAIL_LABELS = {
    "dob": "Date of Birth",
    "income": "Monthly Income",
    "employment": "Employment",
    "loanAmount": "Loan Amount",
    "city": "City",
}


def field_row(label: str, value: Optional[str], multiline: bool = False) -> str:
    """One ``<p><b>Label:</b> value</p>`` line with the value escaped"""
    if multiline:
        return f"<p><b>{label}:</b><br>{sanitize_multiline(value)}</p>"
    return f"<p><b>{label}:</b> {sanitize_string(value)}</p>"


def get_base_template(title: str, rows: list[str]) -> str:
    """Base HTML wrapper for all notifications"""
    body = "\n      ".join(rows)
    return f"""
    <div style="font-family: -apple-system, 'Segoe UI', Arial, sans-serif; color: {THEME['text_secondary']}; background: {THEME['background']}; padding: 24px;">
      <h2 style="color: {THEME['text_primary']}; border-bottom: 1px solid {THEME['border']}; padding-bottom: 8px;">{title}</h2>
      {body}
    </div>
    """


def contact_notification_template(submission: ContactSubmission) -> str:
    return get_base_template(
        "Contact Form Submission",
        [
            field_row("Name", submission.name),
            field_row("Email", submission.email),
            field_row("Loan Type", submission.loanType),
            field_row("Message", submission.message),
        ],
    )


def career_notification_template(submission: CareerSubmission) -> str:
    rows = [
        field_row("Name", submission.fullName),
        field_row("Email", submission.email),
        field_row("Phone", submission.phone),
        field_row("Role", submission.role),
        field_row("Experience", submission.experience),
    ]
    if submission.message:
        rows.append(field_row("Message", submission.message, multiline=True))
    if submission.resume:
        rows.append(field_row("Resume", f"{submission.resume.filename} (attached)"))
    return get_base_template("Career Application", rows)


def loan_application_template(application: LoanApplication) -> str:
    rows = []
    if application.referenceId:
        rows.append(field_row("Reference ID", application.referenceId))
    rows.extend(
        [
            field_row("Name", application.fullName),
            field_row("Email", application.email),
            field_row("Loan Type", application.loanType),
            field_row("Mobile", application.mobile),
        ]
    )
    for name in LoanApplication.detail_fields:
        value = getattr(application, name)
        if not value:
            continue
        if name == "loanAmount":
            value = f"₹{value}"
        rows.append(field_row(LOAN_DETAIL_LABELS[name], value))
    return get_base_template("Loan Application", rows)


# Subject lines
def contact_subject(brand_name: str) -> str:
    return f"New Contact Form Submission [{brand_name}]"


def career_subject(submission: CareerSubmission) -> str:
    return f"New Career Application [{submission.role}] - {submission.fullName}"


def loan_application_subject(application: LoanApplication) -> str:
    return f"New Loan Application - {application.referenceId or application.fullName}"
