"""Extraction profile — declarative rules mapping HTML nodes to message fields.

Example (JSON):

    {
      "message": {"containerSelector": "div.message.default",
                  "ignoreSelectors": ["div.message.service"]},
      "sender": {"rules": [{"selector": "div.from_name",
                            "value": {"type": "text"},
                            "normalize": {"trim": true}}]},
      "timestamp": {"rules": [{"selector": "div.date.details",
                               "value": {"type": "attribute", "name": "title"}}]},
      "text": {"rules": [{"selector": "div.text",
                          "value": {"type": "text", "preserveNewlines": true}}]}
    }
"""

from __future__ import annotations
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import soupsieve

from .errors import InvalidProfileError

DEFAULT_PROFILE_PATH = Path(__file__).parent / "profiles" / "telegram_export_v1.json"
DEFAULT_DATE_SEPARATOR_SELECTOR = "div.message.service div.body.details"

_VALUE_TYPES = {"text": "text", "attribute": "attribute", "attr": "attribute"}

# Match nearly every node of a page; never valid as a container or rule.
TOO_WIDE_SELECTORS = frozenset({"div", "body", "*", "span"})


@dataclass(frozen=True, slots=True)
class Rule:
    selector: str
    value_type: str                # "text" | "attribute"
    attribute: str | None = None
    preserve_newlines: bool = False
    trim: bool = False
    collapse_whitespace: bool = False


@dataclass(frozen=True, slots=True)
class FieldRuleSet:
    """Ordered rules; the first one yielding a non-empty value wins."""
    rules: tuple[Rule, ...]


@dataclass(frozen=True, slots=True)
class ExtractionProfile:
    container_selector: str
    sender: FieldRuleSet
    timestamp: FieldRuleSet
    text: FieldRuleSet
    reply_to: FieldRuleSet | None = None
    ignore_selectors: tuple[str, ...] = ()
    date_separator_selector: str = DEFAULT_DATE_SEPARATOR_SELECTOR
    name: str = ""
    version: int = 1


def load_profile(path: str | Path | None = None) -> ExtractionProfile:
    """Load and validate a profile JSON file (bundled default when path is None)."""
    p = Path(path) if path is not None else DEFAULT_PROFILE_PATH
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidProfileError(f"Profile not readable: {p} ({exc})") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidProfileError(f"Profile is not valid JSON: {p} ({exc})") from exc
    return parse_profile(data, default_name=p.stem)


def parse_profile(data: Any, *, default_name: str = "") -> ExtractionProfile:
    """Build an ExtractionProfile from an already-decoded mapping."""
    if not isinstance(data, dict):
        raise InvalidProfileError("Invalid profile: expected a JSON object")

    message = data.get("message")
    if not isinstance(message, dict):
        raise InvalidProfileError("Invalid profile: missing message section")
    container = message.get("containerSelector")
    if not isinstance(container, str) or not container.strip():
        raise InvalidProfileError("Invalid profile: message.containerSelector is required and non-empty")
    container = container.strip()
    if container.lower() in TOO_WIDE_SELECTORS:
        raise InvalidProfileError(f'Invalid profile: message.containerSelector is too wide ("{container}")')
    _compile_selector(container, "message.containerSelector")
    ignore = message.get("ignoreSelectors") or []
    if not isinstance(ignore, list) or not all(isinstance(s, str) for s in ignore):
        raise InvalidProfileError("Invalid profile: message.ignoreSelectors must be a list of strings")
    for i, sel in enumerate(ignore):
        if sel.strip():
            _compile_selector(sel, f"message.ignoreSelectors[{i}]")

    ts_section = data.get("timestamp", data.get("ts"))
    sender = _parse_field("sender", data.get("sender"))
    timestamp = _parse_field("timestamp", ts_section)
    text = _parse_field("text", data.get("text"))
    reply_to = _parse_field("reply_to", data["reply_to"]) if data.get("reply_to") else None
    if text.rules[-1].selector == container:
        raise InvalidProfileError(
            "Invalid profile: text.rules: last rule selector must not equal "
            "message.containerSelector (it would capture the whole block)"
        )

    separator = DEFAULT_DATE_SEPARATOR_SELECTOR
    if isinstance(ts_section, dict) and ts_section.get("dateSeparatorSelector"):
        separator = str(ts_section["dateSeparatorSelector"])
        _compile_selector(separator, "timestamp.dateSeparatorSelector")

    meta = data.get("meta") if isinstance(data.get("meta"), dict) else {}
    version = meta.get("version", 1)
    return ExtractionProfile(
        container_selector=container,
        sender=sender,
        timestamp=timestamp,
        text=text,
        reply_to=reply_to,
        ignore_selectors=tuple(s for s in ignore if s.strip()),
        date_separator_selector=separator,
        name=str(meta.get("name") or default_name),
        version=version if isinstance(version, int) else 1,
    )


def _parse_field(name: str, section: Any) -> FieldRuleSet:
    if not isinstance(section, dict):
        raise InvalidProfileError(f"Invalid profile: missing {name} section")
    rules = section.get("rules")
    if not isinstance(rules, list):
        raise InvalidProfileError(f"Invalid profile: missing {name}.rules")
    if not rules:
        raise InvalidProfileError(f"Invalid profile: {name}.rules must have at least one rule")
    return FieldRuleSet(rules=tuple(_parse_rule(name, i, r) for i, r in enumerate(rules)))


def _parse_rule(field_name: str, index: int, rule: Any) -> Rule:
    where = f"{field_name}.rules[{index}]"
    if not isinstance(rule, dict):
        raise InvalidProfileError(f"Invalid profile: {where} is not an object")
    selector = rule.get("selector")
    if not isinstance(selector, str) or not selector.strip():
        raise InvalidProfileError(f"Invalid profile: {where}.selector is required and non-empty")
    if selector.strip().lower() in TOO_WIDE_SELECTORS:
        raise InvalidProfileError(f'Invalid profile: {where}.selector: selector too wide ("{selector}")')
    _compile_selector(selector, f"{where}.selector")
    value = rule.get("value")
    if not isinstance(value, dict):
        raise InvalidProfileError(f"Invalid profile: {where}.value is required")
    value_type = _VALUE_TYPES.get(value.get("type", ""))
    if value_type is None:
        raise InvalidProfileError(f'Invalid profile: {where}.value.type must be "text" or "attribute"')
    attribute = value.get("name")
    if value_type == "attribute" and (not isinstance(attribute, str) or not attribute):
        raise InvalidProfileError(f"Invalid profile: {where}.value.name is required for attribute rules")
    normalize = rule.get("normalize") or {}
    return Rule(
        selector=selector.strip(),
        value_type=value_type,
        attribute=attribute if value_type == "attribute" else None,
        preserve_newlines=bool(value.get("preserveNewlines", False)),
        trim=bool(normalize.get("trim", False)),
        collapse_whitespace=bool(normalize.get("collapseWhitespace", False)),
    )


def _compile_selector(selector: str, where: str) -> None:
    try:
        soupsieve.compile(selector.strip())
    except soupsieve.SelectorSyntaxError as exc:
        raise InvalidProfileError(f"Invalid profile: {where} is not a valid CSS selector ({exc})") from exc
