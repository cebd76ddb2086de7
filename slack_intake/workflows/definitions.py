"""Pydantic models describing the two request kinds and their option sets."""

from __future__ import annotations

from typing import Dict, List, Tuple

from pydantic import BaseModel, field_validator

PENTEST = "pentest"
THREAT_MODELING = "threat_modeling"


class Option(BaseModel):
    value: str
    label: str


class KindDefinition(BaseModel):
    kind: str
    prefix: str
    title: str
    noun: str
    event_type: str
    type_label: str
    type_options: List[Option]
    urgency_label: str
    urgency_options: List[Option]
    default_urgency: str

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, value: str) -> str:
        if not value.isalpha() or not value.isupper():
            raise ValueError("prefix must be upper-case letters")
        return value

    def type_text(self, code: str | None) -> str:
        return _label_for(self.type_options, code)

    def urgency_text(self, code: str | None) -> str:
        return _label_for(self.urgency_options, code)


def _options(pairs: Tuple[Tuple[str, str], ...]) -> List[Option]:
    return [Option(value=value, label=label) for value, label in pairs]


def _label_for(options: List[Option], code: str | None) -> str:
    for option in options:
        if option.value == code:
            return option.label
    return code or "Not provided"


PENTEST_TYPES = (
    ("web_app", "Web application"),
    ("mobile_app", "Mobile application"),
    ("api", "API"),
    ("network", "Network"),
    ("cloud", "Cloud infrastructure"),
    ("other", "Other / not sure"),
)

URGENCY_LEVELS = (
    ("critical", "Critical (within 1 week)"),
    ("high", "High (1-2 weeks)"),
    ("medium", "Normal (2-4 weeks)"),
    ("low", "Low (4+ weeks or flexible)"),
    ("unknown", "Not sure yet"),
)

THREAT_MODELING_TYPES = (
    ("standalone", "Standalone threat model"),
    ("risk_assessment_part", "Part of a system risk assessment"),
    ("other", "Other"),
)

PRIORITY_LEVELS = (
    ("high", "High"),
    ("medium", "Medium"),
    ("low", "Low"),
)

FULL_REPORT_LABELS = {"yes": "Yes", "no": "No"}

KIND_DEFINITIONS: Dict[str, KindDefinition] = {
    PENTEST: KindDefinition(
        kind=PENTEST,
        prefix="PT",
        title="Pentest request",
        noun="pentest",
        event_type="pentest_request",
        type_label="Test type",
        type_options=_options(PENTEST_TYPES),
        urgency_label="Urgency",
        urgency_options=_options(URGENCY_LEVELS),
        default_urgency="unknown",
    ),
    THREAT_MODELING: KindDefinition(
        kind=THREAT_MODELING,
        prefix="TM",
        title="Threat modeling",
        noun="threat modeling",
        event_type="threatmodeling_request",
        type_label="Threat modeling type",
        type_options=_options(THREAT_MODELING_TYPES),
        urgency_label="Priority",
        urgency_options=_options(PRIORITY_LEVELS),
        default_urgency="medium",
    ),
}

EVENT_TYPES = {definition.event_type: kind for kind, definition in KIND_DEFINITIONS.items()}


def get_definition(kind: str) -> KindDefinition:
    try:
        return KIND_DEFINITIONS[kind]
    except KeyError:
        raise ValueError(f"Unknown request kind '{kind}'.") from None


def full_report_text(value: str | None) -> str:
    return FULL_REPORT_LABELS.get(value or "", "Not provided")
