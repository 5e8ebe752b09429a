"""
Submission field names and response models.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class SubmissionCapacity(str, Enum):
    # Documented values only; the API does not reject other strings.
    AGENCY = "Agency"
    FREELANCER = "Freelancer"
    CORPORATION = "Corporation"


REQUIRED_FIELDS: tuple[str, ...] = ("full_name", "email_address")

# Column order of the `submissions` table. `visual_links` is derived from the
# uploaded attachments and is never taken from the form.
SUBMISSION_COLUMNS: tuple[str, ...] = (
    "full_name",
    "email_address",
    "contact_number",
    "submission_capacity",
    "team_members",
    "prize_cheque_name",
    "consent_declarations",
    "challenge",
    "insight",
    "strategic_idea",
    "strategy_execution",
    "expected_results",
    "entry_topic",
    "concept_strategy",
    "objective",
    "rationale",
    "measurement",
    "insight_description",
    "strategic_solution",
    "creative_plan",
    "communication_strategy",
    "result_impact",
    "result_scope",
    "visual_links",
    "why_outstanding",
)

SUBMITTED_FIELDS: tuple[str, ...] = tuple(c for c in SUBMISSION_COLUMNS if c != "visual_links")

# Multipart field name that carries attachment parts.
ATTACHMENT_FIELD = "visual_files"

SUCCESS_MESSAGE = "Entry successfully submitted!"


class SubmitEntryResponse(BaseModel):
    message: str = SUCCESS_MESSAGE
    visual_links: str | None = None
    entry_id: int


class ErrorResponse(BaseModel):
    message: str
    error: str | None = None
