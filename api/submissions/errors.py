"""
Submission failure taxonomy.

Components raise these; only the coordinator (`service.py`) turns them into
HTTP status codes and response bodies.
"""

from __future__ import annotations


class SubmissionError(Exception):
    status_code = 500


class ClientInputError(SubmissionError):
    status_code = 400


class MissingFieldsError(ClientInputError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__("Missing required fields: " + ", ".join(self.missing))


class DisallowedMediaTypeError(ClientInputError):
    def __init__(self, filename: str, media_type: str) -> None:
        self.filename = filename
        self.media_type = media_type
        super().__init__(f"File type '{media_type or 'unknown'}' is not allowed for '{filename}'.")


class AttachmentTooLargeError(ClientInputError):
    status_code = 413

    def __init__(self, filename: str, max_bytes: int) -> None:
        self.filename = filename
        self.max_bytes = max_bytes
        super().__init__(f"File '{filename}' is too large. Max is {max_bytes} bytes.")


class UploadError(SubmissionError):
    def __init__(self, message: str, *, key: str | None = None, uploaded_keys: list[str] | None = None) -> None:
        super().__init__(message)
        self.key = key
        self.uploaded_keys = list(uploaded_keys or [])


class StoreError(SubmissionError):
    def __init__(self, message: str, *, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


class SchemaMismatchError(StoreError):
    pass


class TransientStoreError(StoreError):
    pass
