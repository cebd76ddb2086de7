from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from slack_intake.errors import ValidationError  # noqa: E402
from slack_intake.validation import (  # noqa: E402
    safe_validate,
    sanitize_channel_name,
    unique_user_ids,
    validate_channel_id,
    validate_request_data,
    validate_request_id,
    validate_timestamp,
    validate_user_id,
    validate_user_id_list,
)


@pytest.mark.parametrize("user_id", ["U12345678", "W1234567890", "u12345678"])
def test_validate_user_id_accepts_slack_ids(user_id):
    assert validate_user_id(user_id) == user_id


@pytest.mark.parametrize("user_id", ["", None, "U1", "U123456789012", "U1234-5678", 42])
def test_validate_user_id_rejects_malformed(user_id):
    with pytest.raises(ValidationError) as excinfo:
        validate_user_id(user_id, "requested_by")

    assert excinfo.value.field == "requested_by"


def test_validate_channel_id_requires_c_prefix():
    assert validate_channel_id("C12345678") == "C12345678"
    with pytest.raises(ValidationError):
        validate_channel_id("D12345678")


def test_validate_timestamp_shape():
    assert validate_timestamp("1700000000.000100") == "1700000000.000100"
    with pytest.raises(ValidationError):
        validate_timestamp("1700000000")


def test_validate_request_id_length_bounds():
    assert validate_request_id("PT-1") == "PT-1"
    with pytest.raises(ValidationError):
        validate_request_id("PT")
    with pytest.raises(ValidationError):
        validate_request_id("X" * 51)


def test_validate_user_id_list_checks_every_entry():
    assert validate_user_id_list([], allow_empty=True) == []
    with pytest.raises(ValidationError):
        validate_user_id_list([])
    with pytest.raises(ValidationError) as excinfo:
        validate_user_id_list(["U12345678", "bad"], "team_members")

    assert excinfo.value.field == "team_members[1]"


def test_validate_request_data_requires_project_and_requester():
    data = {"project_name": "Apollo", "requested_by": "U12345678", "team_members": ["U87654321"]}
    assert validate_request_data(data) is data

    with pytest.raises(ValidationError) as excinfo:
        validate_request_data({"requested_by": "U12345678"})
    assert excinfo.value.field == "project_name"

    with pytest.raises(ValidationError):
        validate_request_data({"project_name": "Apollo", "requested_by": "U1"})


def test_safe_validate_returns_none_on_failure():
    assert safe_validate(validate_user_id, "U12345678") == "U12345678"
    assert safe_validate(validate_user_id, "nope") is None


@pytest.mark.parametrize(
    "name, expected",
    [
        ("My Project!", "my-project"),
        ("  --Ünïcode--  ", "n-code"),
        ("", "project"),
        (None, "project"),
        ("!!!", "project"),
        ("a" * 60, "a" * 40),
    ],
)
def test_sanitize_channel_name(name, expected):
    assert sanitize_channel_name(name) == expected


def test_unique_user_ids_preserves_first_seen_order():
    assert unique_user_ids(["U2", "U1"], None, ["U1", "", "U3"]) == ["U2", "U1", "U3"]
