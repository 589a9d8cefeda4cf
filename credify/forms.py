"""Request body reading for the form endpoints (JSON, url-encoded or multipart)"""

import json
import logging
from typing import Any

from fastapi import Request
from starlette.datastructures import UploadFile

from .schemas import FieldError
from .validation import SubmissionValidationError

logger = logging.getLogger(__name__)


class FormBody:
    """Text fields plus any uploaded files, keyed by field name"""

    def __init__(self, fields: dict[str, Any], files: dict[str, list[UploadFile]]):
        self.fields = fields
        self.files = files

    def files_for(self, name: str) -> list[UploadFile]:
        return self.files.get(name, [])


def _malformed(reason: str) -> SubmissionValidationError:
    return SubmissionValidationError(
        [FieldError(msg=reason, path="body")], "Malformed request body"
    )


async def read_form_body(request: Request) -> FormBody:
    """
    Read the request body regardless of encoding.

    JSON bodies must be an object. Form bodies keep the first value of a
    repeated text field; files are collected per field.
    """
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith("multipart/form-data") or content_type.startswith(
        "application/x-www-form-urlencoded"
    ):
        form = await request.form()
        fields: dict[str, Any] = {}
        files: dict[str, list[UploadFile]] = {}
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                files.setdefault(key, []).append(value)
            elif key not in fields:
                fields[key] = value
        return FormBody(fields, files)

    raw = await request.body()
    if not raw.strip():
        return FormBody({}, {})

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"⚠️ Unparseable JSON body on {request.url.path}: {e}")
        raise _malformed("Body must be valid JSON") from e

    if not isinstance(data, dict):
        raise _malformed("Body must be a JSON object")

    return FormBody(data, {})
