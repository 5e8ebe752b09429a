"""
Submission "service layer": the request coordinator.

One call per request walks validated -> attachments resolved -> persisted
and turns every failure into a status code and a JSON body. Nothing here
survives between requests; the database pool and storage client are injected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Sequence

from core.config import Settings

from . import attachments, repository
from .errors import (
    ClientInputError,
    MissingFieldsError,
    SchemaMismatchError,
    StoreError,
    SubmissionError,
    TransientStoreError,
    UploadError,
)
from .schemas import SUCCESS_MESSAGE, ErrorResponse, SubmitEntryResponse
from .validation import validate_fields

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    ATTACHMENTS_RESOLVED = "attachments_resolved"
    PERSISTED = "persisted"
    RESPONDED = "responded"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class CoordinatorResponse:
    status_code: int
    payload: dict[str, Any]
    stage: Stage


def _store_failure_kind(exc: StoreError) -> str:
    if isinstance(exc, SchemaMismatchError):
        return "schema_mismatch"
    if isinstance(exc, TransientStoreError):
        return "transient"
    return "store"


class SubmissionCoordinator:
    def __init__(self, *, database: Any, storage: Any, settings: Settings) -> None:
        self._database = database
        self._storage = storage
        self._settings = settings

    def _error(self, status_code: int, message: str, exc: BaseException | None, stage: Stage) -> CoordinatorResponse:
        detail = str(exc) if (exc is not None and self._settings.expose_error_detail) else None
        body = ErrorResponse(message=message, error=detail).model_dump(exclude_none=True)
        return CoordinatorResponse(status_code=status_code, payload=body, stage=stage)

    async def _cleanup(self, keys: Sequence[str], *, reason: str) -> None:
        """
        Best-effort removal of objects whose submission never got stored.
        """
        if not keys or not self._settings.cleanup_orphaned_uploads:
            return
        for key in keys:
            try:
                await self._storage.delete_object(key)
            except Exception:
                logger.exception("orphan_cleanup_failed key=%s reason=%s", key, reason)
            else:
                logger.info("orphan_cleanup_deleted key=%s reason=%s", key, reason)

    async def submit(
        self,
        raw_fields: Mapping[str, Any],
        uploads: Sequence[Any] = (),
    ) -> SubmitEntryResponse:
        """
        Run one entry through validation, upload and insert.

        Raises the `SubmissionError` family; `handle()` maps those to responses.
        """
        fields = validate_fields(raw_fields)

        # Every declared type is checked before anything is read or uploaded.
        attachments.check_media_types(uploads)
        items = [
            await attachments.read_attachment(u, max_bytes=self._settings.max_upload_bytes)
            for u in uploads
        ]

        try:
            uploaded = await attachments.upload_attachments(
                self._storage,
                items,
                prefix=self._storage.key_prefix,
            )
        except UploadError as exc:
            await self._cleanup(exc.uploaded_keys, reason="upload_failed")
            raise

        try:
            entry_id = await repository.insert_submission(
                self._database,
                fields,
                visual_links=uploaded.visual_links,
            )
        except StoreError:
            await self._cleanup(uploaded.keys, reason="store_failed")
            raise

        logger.info(
            "submission_persisted entry_id=%s attachments=%s",
            entry_id,
            len(uploaded.keys),
        )
        return SubmitEntryResponse(
            message=SUCCESS_MESSAGE,
            visual_links=uploaded.visual_links,
            entry_id=entry_id,
        )

    async def handle(
        self,
        raw_fields: Mapping[str, Any],
        uploads: Sequence[Any] = (),
    ) -> CoordinatorResponse:
        try:
            result = await self.submit(raw_fields, uploads)
        except MissingFieldsError as exc:
            logger.info("submission_rejected missing=%s", ",".join(exc.missing))
            return CoordinatorResponse(
                status_code=exc.status_code,
                payload=ErrorResponse(message=str(exc)).model_dump(exclude_none=True),
                stage=Stage.REJECTED,
            )
        except ClientInputError as exc:
            logger.info("submission_rejected reason=%s", exc)
            return CoordinatorResponse(
                status_code=exc.status_code,
                payload=ErrorResponse(message=str(exc)).model_dump(exclude_none=True),
                stage=Stage.FAILED,
            )
        except UploadError as exc:
            logger.error(
                "submission_upload_failed stage=attachments key=%s uploaded=%s error=%s",
                exc.key,
                len(exc.uploaded_keys),
                exc.__cause__ or exc,
            )
            return self._error(500, "Error uploading attachments.", exc, Stage.FAILED)
        except StoreError as exc:
            kind = _store_failure_kind(exc)
            if kind == "schema_mismatch":
                logger.error(
                    "submission_store_failed stage=persist kind=%s sqlstate=%s "
                    "hint=compare the submissions table with db/schema.sql error=%s",
                    kind,
                    exc.sqlstate,
                    exc,
                )
            else:
                logger.error(
                    "submission_store_failed stage=persist kind=%s sqlstate=%s error=%s",
                    kind,
                    exc.sqlstate,
                    exc,
                )
            return self._error(500, "Error saving the entry.", exc, Stage.FAILED)
        except SubmissionError as exc:
            logger.error("submission_failed error=%s", exc)
            return self._error(exc.status_code, "Error processing submission.", exc, Stage.FAILED)
        except Exception as exc:
            logger.exception("submission_failed_unexpected")
            return self._error(500, "Error processing submission.", exc, Stage.FAILED)

        return CoordinatorResponse(
            status_code=200,
            payload=result.model_dump(),
            stage=Stage.RESPONDED,
        )
