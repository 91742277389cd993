"""Profile-driven HTML message extraction.

Deterministic: same profile + HTML + tz gives the same messages.

For every container matching ``profile.container_selector`` (minus ignored
ones) each field rule set is evaluated first-match-wins.  Containers without
any timestamp are dropped; if no container matches at all the whole document
degrades to one ``unknown`` message holding its plain text.
"""

from __future__ import annotations
import logging
import re
from collections import Counter
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

from .profile import ExtractionProfile, FieldRuleSet, Rule
from .timestamps import build_raw_timestamp, is_clock_time, parse_timestamp
from .types import Attachment, Message, Sender

LOGGER = logging.getLogger(__name__)

ATTACHMENT_PLACEHOLDER = "[attachment]"
CONTINUATION_CLASS = "joined"

# Order matters: prefixes are not mutually exclusive in every export layout.
ATTACHMENT_KINDS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^(?:\./)?photos/", re.IGNORECASE), "photo"),
    (re.compile(r"^(?:\./)?(?:video_files|videos?)/", re.IGNORECASE), "video"),
    (re.compile(r"^(?:\./)?files/", re.IGNORECASE), "file"),
    (re.compile(r"^(?:\./)?stickers/", re.IGNORECASE), "sticker"),
    (re.compile(r"^(?:\./)?voice_messages/", re.IGNORECASE), "voice"),
]

_NEWLINE_RUN = re.compile(r"\s*\n\s*")
_WHITESPACE_RUN = re.compile(r"\s+")
_MESSAGE_REF = re.compile(r"(?:go_to_)?message(\d+)$")


@dataclass(slots=True)
class ExtractionStats:
    container_matches: int = 0
    dropped_without_ts: int = 0
    sender_distribution: dict[str, int] = field(default_factory=dict)
    # field name -> {rule index: containers answered by that rule}
    rule_hits: dict[str, dict[int, int]] = field(default_factory=dict)
    fallback: bool = False


@dataclass(slots=True)
class ExtractionResult:
    messages: list[Message]
    stats: ExtractionStats


def normalize_sender(raw: str) -> Sender:
    """Map free-form sender text onto the closed Sender set."""
    s = (raw or "").strip()
    lower = s.lower()
    if "ao000" in lower:
        return Sender.AO000
    if "ao001" in lower:
        return Sender.AO001
    if "ao002" in lower:
        return Sender.AO002
    if re.search(r"\bleo\b|\byzliu\b", s, re.IGNORECASE):
        return Sender.LEO
    if re.search(r"^yz\b|yz\s*@", s, re.IGNORECASE):
        return Sender.LEO
    if re.search(r"\bsystem\b", lower):
        return Sender.SYSTEM
    return Sender.UNKNOWN


def classify_attachment(path: str) -> str:
    normalized = path.replace("\\", "/")
    for pattern, kind in ATTACHMENT_KINDS:
        if pattern.search(normalized):
            return kind
    return "unknown"


def extract_messages(html: str, profile: ExtractionProfile, tz: str = "UTC") -> ExtractionResult:
    """Extract messages from HTML and assign sequential ids (m000001, ...)."""
    soup = BeautifulSoup(html, "html.parser")
    stats = ExtractionStats()

    ignored = {id(el) for sel in profile.ignore_selectors for el in soup.select(sel)}
    containers = [el for el in soup.select(profile.container_selector) if id(el) not in ignored]
    stats.container_matches = len(containers)

    if not containers:
        LOGGER.warning("No element matches %r; degrading to plain-text fallback",
                       profile.container_selector)
        stats.fallback = True
        messages = _fallback_messages(soup)
        stats.sender_distribution = {Sender.UNKNOWN.value: len(messages)}
        return ExtractionResult(messages=messages, stats=stats)

    dates = _preceding_dates(soup, containers, profile.date_separator_selector)
    senders: Counter[str] = Counter()
    hits: dict[str, Counter[int]] = {
        "sender": Counter(), "timestamp": Counter(), "text": Counter(), "reply_to": Counter(),
    }

    drafts: list[dict] = []
    last_sender_raw = ""
    for container, date_text in zip(containers, dates):
        sender_raw, sender_rule = _extract_field(container, profile.sender)
        if sender_rule is not None:
            hits["sender"][sender_rule] += 1
        if not sender_raw and last_sender_raw and CONTINUATION_CLASS in (container.get("class") or []):
            sender_raw = last_sender_raw
        sender = normalize_sender(sender_raw)
        if sender is not Sender.UNKNOWN:
            last_sender_raw = sender_raw

        ts_raw, ts_rule = _extract_field(container, profile.timestamp)
        if ts_rule is not None:
            hits["timestamp"][ts_rule] += 1
            if profile.timestamp.rules[ts_rule].value_type == "text":
                ts_raw = _qualify_time(ts_raw, date_text, tz)
        if not ts_raw:
            stats.dropped_without_ts += 1
            continue

        text, text_rule = _extract_field(container, profile.text)
        if text_rule is not None:
            hits["text"][text_rule] += 1
        reply_ref = None
        if profile.reply_to is not None:
            reply_ref, reply_rule = _extract_field(container, profile.reply_to)
            if reply_rule is not None:
                hits["reply_to"][reply_rule] += 1

        attachments = _attachments(container)
        if not text and attachments:
            text = ATTACHMENT_PLACEHOLDER

        senders[sender.value] += 1
        drafts.append({
            "dom_id": container.get("id") or "",
            "ts_raw": ts_raw,
            "ts": parse_timestamp(ts_raw, tz) or "",
            "sender": sender,
            "text": text,
            "reply_ref": reply_ref or None,
            "attachments": attachments,
        })

    if stats.dropped_without_ts:
        LOGGER.debug("Dropped %d container(s) without a timestamp", stats.dropped_without_ts)

    messages = _assign_ids(drafts)
    stats.sender_distribution = dict(senders)
    stats.rule_hits = {name: dict(sorted(c.items())) for name, c in hits.items() if c}
    return ExtractionResult(messages=messages, stats=stats)


def message_id(index: int) -> str:
    return f"m{index + 1:06d}"


def _assign_ids(drafts: list[dict]) -> list[Message]:
    by_dom = {d["dom_id"]: message_id(i) for i, d in enumerate(drafts) if d["dom_id"]}
    out: list[Message] = []
    for i, d in enumerate(drafts):
        out.append(Message(
            id=message_id(i),
            ts=d["ts"],
            ts_raw=d["ts_raw"],
            sender=d["sender"],
            text=d["text"],
            reply_to=_resolve_reply(d["reply_ref"], by_dom),
            attachments=tuple(d["attachments"]),
        ))
    return out


def _resolve_reply(ref: str | None, by_dom: dict[str, str]) -> str | None:
    """Turn "#go_to_message123" into the id of the message rendered as #message123."""
    if not ref:
        return None
    m = _MESSAGE_REF.search(ref.lstrip("#"))
    if not m:
        return None
    return by_dom.get(f"message{m.group(1)}")


def _extract_with_rule(container: Tag, rule: Rule) -> str:
    el = container.select_one(rule.selector)
    if el is None:
        return ""
    if rule.value_type == "text":
        raw = el.get_text()
        if rule.preserve_newlines:
            raw = _NEWLINE_RUN.sub("\n", raw)
    else:
        value = el.get(rule.attribute or "")
        raw = " ".join(value) if isinstance(value, list) else (value or "")
    if rule.trim:
        raw = raw.strip()
    if rule.collapse_whitespace:
        raw = _WHITESPACE_RUN.sub(" ", raw).strip()
    return raw


def _extract_field(container: Tag, rule_set: FieldRuleSet) -> tuple[str, int | None]:
    """First non-empty value wins; returns (value, rule index) or ("", None)."""
    for index, rule in enumerate(rule_set.rules):
        value = _extract_with_rule(container, rule)
        if value:
            return value, index
    return "", None


def _qualify_time(text: str, date_text: str, tz: str) -> str:
    """A rendered clock time gets its date from the nearest date separator."""
    value = text.strip()
    if parse_timestamp(value, tz) is not None or not is_clock_time(value):
        return value
    rebuilt = build_raw_timestamp(date_text, value, tz) if date_text else None
    return rebuilt or value


def _preceding_dates(soup: BeautifulSoup, containers: list[Tag], separator_selector: str) -> list[str]:
    """Text of the nearest date separator before each container, in document order."""
    separators = {id(el) for el in soup.select(separator_selector)} if separator_selector else set()
    wanted = {id(el) for el in containers}
    found: dict[int, str] = {}
    current = ""
    for el in soup.find_all(True):
        if id(el) in separators:
            current = _WHITESPACE_RUN.sub(" ", el.get_text()).strip()
        elif id(el) in wanted:
            found[id(el)] = current
    return [found.get(id(el), "") for el in containers]


def _attachments(container: Tag) -> list[Attachment]:
    out: list[Attachment] = []
    seen: set[str] = set()
    for el in container.select("a[href], img[src]"):
        ref = el.get("href") or el.get("src") or ""
        path = ref.replace("\\", "/")
        if path.startswith("./"):
            path = path[2:]
        if not path or path.startswith("http") or path.startswith("#"):
            continue
        if path in seen:
            continue
        seen.add(path)
        out.append(Attachment(kind=classify_attachment(path), path=path))
    return out


def _fallback_messages(soup: BeautifulSoup) -> list[Message]:
    root = soup.body or soup
    for tag in root.find_all(["script", "style"]):
        tag.decompose()
    text = _WHITESPACE_RUN.sub(" ", root.get_text(" ")).strip()
    if not text:
        return []
    return [Message(id=message_id(0), ts="", ts_raw="", sender=Sender.UNKNOWN, text=text)]
