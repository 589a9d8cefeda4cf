"""
Resume upload checks for the career form

A single file under the ``resume`` field, limited by MIME type and size.
The file is read into memory for attaching and is never stored.
"""

import logging
from typing import Optional

from starlette.datastructures import UploadFile

from .schemas import ResumeFile

logger = logging.getLogger(__name__)

RESUME_FIELD = "resume"

TYPE_LABELS = {
    "application/pdf": "PDF",
    "application/msword": "DOC",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "DOCX",
}


class ResumeRejected(Exception):
    """Resume missing, of a disallowed type, or too large"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def describe_allowed(allowed_types: list[str]) -> str:
    labels = [TYPE_LABELS.get(t, t) for t in allowed_types]
    return "Only " + ", ".join(labels) + " allowed"


async def read_resume(
    uploads: list[UploadFile],
    allowed_types: list[str],
    max_bytes: int,
    required: bool = True,
) -> Optional[ResumeFile]:
    """
    Validate and read the uploaded resume.

    Args:
        uploads: Files submitted under the resume field (zero or one expected)
        allowed_types: Accepted MIME types
        max_bytes: Maximum file size in bytes
        required: Whether a missing resume is an error

    Returns:
        ResumeFile, or None when no file was sent and none is required

    Raises:
        ResumeRejected: On any violation
    """
    if len(uploads) > 1:
        logger.warning(f"❌ {len(uploads)} files sent under '{RESUME_FIELD}'")
        raise ResumeRejected("Only one resume file allowed")

    upload = uploads[0] if uploads else None
    if upload is None or not upload.filename:
        if required:
            raise ResumeRejected("Resume required")
        return None

    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type not in allowed_types:
        logger.warning(f"❌ Resume type rejected: '{content_type}' ({upload.filename})")
        raise ResumeRejected(describe_allowed(allowed_types))

    # Read one byte past the limit so oversize files are caught without loading them whole
    contents = await upload.read(max_bytes + 1)
    if len(contents) > max_bytes:
        logger.warning(f"❌ Resume too large: {upload.filename}")
        raise ResumeRejected(f"File size exceeds {max_bytes // (1024 * 1024)}MB limit")

    return ResumeFile(filename=upload.filename, content_type=content_type, content=contents)
