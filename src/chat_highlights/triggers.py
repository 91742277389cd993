"""Trigger catalogue: error / permission / action.

Only error triggers anchor segmentation; every category is recorded on the
segments it falls in.  Matching uses ``search`` on compiled patterns, which
keeps no state between calls.
"""

from __future__ import annotations
import re
from dataclasses import dataclass

SEGMENT_WINDOW_PRE = 6
SEGMENT_WINDOW_POST = 12


@dataclass(frozen=True, slots=True)
class TriggerDef:
    id: str
    category: str          # "error" | "permission" | "action"
    pattern: re.Pattern


def _t(trigger_id: str, category: str, regex: str) -> TriggerDef:
    return TriggerDef(trigger_id, category, re.compile(regex, re.IGNORECASE))


ERROR_TRIGGERS: tuple[TriggerDef, ...] = (
    _t("error.cors", "error", r"CORS|cross-origin"),
    _t("error.401", "error", r"401|Unauthorized"),
    _t("error.403", "error", r"403|Forbidden"),
    _t("error.404", "error", r"404|Not Found"),
    _t("error.timeout", "error", r"timeout|timed out"),
    _t("error.invalid_config", "error", r"Invalid config|invalid configuration"),
)

PERMISSION_TRIGGERS: tuple[TriggerDef, ...] = (
    _t("perm.allow", "permission", r"\ballow\b"),
    _t("perm.approve", "permission", r"\bapprove\b"),
    _t("perm.grant", "permission", r"\bgrant\b"),
    _t("perm.permission", "permission", r"\bpermission\b"),
)

ACTION_TRIGGERS: tuple[TriggerDef, ...] = (
    _t("action.curl", "action", r"\bcurl\b"),
    _t("action.openclaw", "action", r"\bopenclaw\b"),
    _t("action.env", "action", r"\benv\b.*\bexport\b|\bexport\b.*\benv\b"),
    _t("action.header", "action", r"\bheader\b|-H\s+"),
    _t("action.ssh", "action", r"\bssh\b"),
    _t("action.gateway", "action", r"gateway\s+status"),
    _t("action.doctor", "action", r"\bdoctor\b"),
)

ALL_TRIGGERS: tuple[TriggerDef, ...] = ERROR_TRIGGERS + PERMISSION_TRIGGERS + ACTION_TRIGGERS


def match_triggers(text: str) -> list[TriggerDef]:
    """All triggers (any category) hit by text, in catalogue order."""
    return [t for t in ALL_TRIGGERS if t.pattern.search(text)]


def match_error_triggers(text: str) -> list[str]:
    return [t.id for t in ERROR_TRIGGERS if t.pattern.search(text)]


def has_error_trigger(text: str) -> bool:
    return any(t.pattern.search(text) for t in ERROR_TRIGGERS)
