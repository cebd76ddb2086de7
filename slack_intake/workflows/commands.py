"""Parsing for the ``/request`` slash command."""

from __future__ import annotations

from dataclasses import dataclass

from .definitions import PENTEST, THREAT_MODELING

_KIND_ALIASES = {
    "pentest": PENTEST,
    "pt": PENTEST,
    "threat_modeling": THREAT_MODELING,
    "threat-modeling": THREAT_MODELING,
    "threatmodeling": THREAT_MODELING,
    "tm": THREAT_MODELING,
}

USAGE = "Usage: `/request pentest` or `/request threat_modeling`"


@dataclass
class CommandContext:
    kind: str


def parse_slash_command(text: str) -> CommandContext:
    keyword = (text or "").strip().lower()
    if not keyword:
        raise ValueError(f"Request type is required. {USAGE}")
    kind = _KIND_ALIASES.get(keyword.split()[0])
    if kind is None:
        raise ValueError(f"Unknown request type `{keyword}`. {USAGE}")
    return CommandContext(kind=kind)
