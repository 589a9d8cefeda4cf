from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .shared.validators import (
    validate_email,
    validate_min_length,
    validate_not_empty,
    validate_phone,
)


class FieldError(BaseModel):
    """One rejected field, shaped like the error entries the frontend already parses"""

    type: str = "field"
    msg: str
    path: str
    location: str = "body"


class SubmissionResponse(BaseModel):
    success: bool = True
    msg: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    errors: Optional[list[FieldError]] = None


class Submission(BaseModel):
    """Base for all form payloads. Unknown fields are ignored, strings are trimmed."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore", frozen=True)

    # Message reported for any failure on a field; "Invalid value" otherwise
    field_messages: ClassVar[dict[str, str]] = {}
    # Message reported in the top-level "error" key on rejection
    rejection_message: ClassVar[str] = "Validation failed"

    @field_validator("*", mode="before")
    @classmethod
    def numbers_as_text(cls, v):
        # Frontends send amounts and phone numbers as JSON numbers
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


# Contact Form Schemas
class ContactSubmission(Submission):
    name: str
    email: str
    loanType: str
    message: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_min_length(v, 2, "Invalid value")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return validate_email(v)

    @field_validator("loanType")
    @classmethod
    def validate_loan_type(cls, v):
        return validate_not_empty(v, "Invalid value")

    @field_validator("message")
    @classmethod
    def validate_message(cls, v):
        return validate_min_length(v, 5, "Invalid value")


# Career Application Schemas
class ResumeFile(BaseModel):
    filename: str
    content_type: str
    content: bytes


class CareerSubmission(Submission):
    fullName: str
    email: str
    phone: str
    role: str
    experience: str
    message: Optional[str] = None
    resume: Optional[ResumeFile] = None

    field_messages: ClassVar[dict[str, str]] = {
        "fullName": "Full name required",
        "email": "Valid email required",
        "phone": "Phone required",
        "role": "Role required",
        "experience": "Experience required",
    }

    @field_validator("fullName")
    @classmethod
    def validate_full_name(cls, v):
        return validate_min_length(v, 2, "Full name required")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_phone(v)

    @field_validator("role", "experience")
    @classmethod
    def validate_required_text(cls, v, info):
        return validate_not_empty(v, cls.field_messages[info.field_name])

    @field_validator("message")
    @classmethod
    def blank_message_is_none(cls, v):
        return v or None


# Loan Application Schemas
class LoanApplication(Submission):
    referenceId: Optional[str] = None
    loanType: str
    fullName: str
    mobile: str
    email: str
    dob: Optional[str] = None
    income: Optional[str] = None
    employment: Optional[str] = None
    loanAmount: Optional[str] = None
    city: Optional[str] = None

    rejection_message: ClassVar[str] = "Missing fields"

    # Optional details, in the order they appear in the notification
    detail_fields: ClassVar[tuple[str, ...]] = ("dob", "income", "employment", "loanAmount", "city")

    @field_validator("loanType", "fullName", "mobile", "email")
    @classmethod
    def validate_required(cls, v):
        return validate_not_empty(v, "Invalid value")

    @field_validator("referenceId", *detail_fields)
    @classmethod
    def blank_is_none(cls, v):
        return v or None
