"""
Required-field check for incoming entries.

Deliberately permissive: only the two identity fields are checked. Values are
passed through untouched, including `submission_capacity`, which is logged
but not rejected when it falls outside the documented values.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .errors import MissingFieldsError
from .schemas import REQUIRED_FIELDS, SUBMITTED_FIELDS, SubmissionCapacity

logger = logging.getLogger(__name__)

_KNOWN_CAPACITIES = {c.value for c in SubmissionCapacity}


def _is_blank(value: Any) -> bool:
    return value is None or not isinstance(value, str) or not value.strip()


def validate_fields(raw: Mapping[str, Any]) -> dict[str, str | None]:
    missing = [name for name in REQUIRED_FIELDS if _is_blank(raw.get(name))]
    if missing:
        raise MissingFieldsError(missing)

    fields: dict[str, str | None] = {}
    for name in SUBMITTED_FIELDS:
        value = raw.get(name)
        fields[name] = value if isinstance(value, str) else None

    capacity = fields.get("submission_capacity")
    if capacity and capacity not in _KNOWN_CAPACITIES:
        logger.warning("submission_capacity_unrecognized value=%r", capacity)

    return fields
