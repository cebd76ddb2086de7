from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from slack_intake.workflows.commands import parse_slash_command  # noqa: E402


@pytest.mark.parametrize(
    "text, kind",
    [
        ("pentest", "pentest"),
        ("PT", "pentest"),
        ("  threat_modeling ", "threat_modeling"),
        ("threat-modeling", "threat_modeling"),
        ("tm please", "threat_modeling"),
    ],
)
def test_parse_slash_command_aliases(text, kind):
    assert parse_slash_command(text).kind == kind


def test_parse_slash_command_requires_kind():
    with pytest.raises(ValueError, match="required"):
        parse_slash_command("   ")


def test_parse_slash_command_rejects_unknown_kind():
    with pytest.raises(ValueError, match="Unknown request type"):
        parse_slash_command("audit")
