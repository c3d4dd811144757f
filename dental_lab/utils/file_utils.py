"""
File utility functions for case attachments.
"""
import os
import uuid
from typing import List

from fastapi import UploadFile

from dental_lab.core.exceptions import ValidationFailedError


def get_upload_size(file: UploadFile) -> int:
    """Size of an uploaded file in bytes without consuming it."""
    file.file.seek(0, 2)  # Seek to end
    size = file.file.tell()
    file.file.seek(0)  # Reset to beginning
    return size


def validate_file_upload(file: UploadFile, allowed_types: List[str], max_size: int) -> int:
    """Validate an uploaded case attachment and return its size."""
    if not file.filename:
        raise ValidationFailedError("No file provided", code="NO_FILE")

    content_type = (file.content_type or "").lower()
    if content_type not in [t.lower() for t in allowed_types]:
        raise ValidationFailedError(
            f"Invalid file type: {content_type or 'unknown'}",
            code="INVALID_FILE_TYPE",
            details={"allowed": allowed_types}
        )

    size = get_upload_size(file)
    if size > max_size:
        raise ValidationFailedError(
            f"File size {size} exceeds maximum allowed size {max_size}",
            code="FILE_TOO_LARGE"
        )
    return size


def build_case_file_key(case_id: str, filename: str) -> str:
    """Storage key for a case attachment: ``cases/{caseId}/{uuid}{ext}``."""
    _, ext = os.path.splitext(filename)
    return f"cases/{case_id}/{uuid.uuid4()}{ext.lower()}"
