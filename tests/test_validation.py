from __future__ import annotations

import pytest

from submissions.errors import ClientInputError, MissingFieldsError
from submissions.schemas import SUBMITTED_FIELDS
from submissions.validation import validate_fields


def test_validate_fields_passes_values_through_verbatim():
    fields = validate_fields(
        {
            "full_name": "  Jane Doe ",
            "email_address": "jane@x.com",
            "result_scope": "National",
        }
    )

    assert fields["full_name"] == "  Jane Doe "
    assert fields["result_scope"] == "National"
    assert fields["objective"] is None
    assert set(fields) == set(SUBMITTED_FIELDS)


@pytest.mark.parametrize(
    ("raw", "missing"),
    [
        ({}, ["full_name", "email_address"]),
        ({"full_name": "Jane"}, ["email_address"]),
        ({"full_name": "   ", "email_address": "jane@x.com"}, ["full_name"]),
        ({"full_name": "Jane", "email_address": ""}, ["email_address"]),
    ],
)
def test_validate_fields_reports_missing_identity_fields(raw, missing):
    with pytest.raises(MissingFieldsError) as exc_info:
        validate_fields(raw)

    assert exc_info.value.missing == missing
    assert isinstance(exc_info.value, ClientInputError)
    assert exc_info.value.status_code == 400
    assert str(exc_info.value) == "Missing required fields: " + ", ".join(missing)


def test_validate_fields_ignores_client_supplied_visual_links_and_unknown_keys():
    fields = validate_fields(
        {
            "full_name": "Jane",
            "email_address": "jane@x.com",
            "visual_links": "https://evil.example/x.png",
            "is_admin": "true",
        }
    )

    assert "visual_links" not in fields
    assert "is_admin" not in fields


def test_validate_fields_accepts_unlisted_capacity(caplog: pytest.LogCaptureFixture):
    with caplog.at_level("WARNING"):
        fields = validate_fields(
            {"full_name": "Jane", "email_address": "jane@x.com", "submission_capacity": "Collective"}
        )

    assert fields["submission_capacity"] == "Collective"
    assert "submission_capacity_unrecognized" in caplog.text
