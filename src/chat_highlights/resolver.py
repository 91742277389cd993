"""Input resolution — find the transcript HTML inside a file or export folder.

Resolution order for a directory:
  1. exact candidate filenames (EXPORT_HTML_CANDIDATES, in order)
  2. any ``messages*.html`` (lexicographic, first wins)
  3. shallow scan (top level, then one level down) for an ``.html`` file
     whose raw markup carries a message block class

Paths returned are absolute and resolved; nothing downstream re-resolves them.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from .errors import InputNotFoundError, NoHtmlFoundError

LOGGER = logging.getLogger(__name__)

# Priority-ordered; extend for other messengers' export layouts.
EXPORT_HTML_CANDIDATES: tuple[str, ...] = ("messages.html",)

ASSET_DIR_NAMES: tuple[str, ...] = ("photos", "images", "css", "js")

_MESSAGE_MARKER = re.compile(r"""class\s*=\s*["'][^"']*message""", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class ResolvedInput:
    kind: str                  # "file" | "dir"
    input_path: Path
    export_root: Path
    messages_html: Path
    assets: dict[str, Path] = field(default_factory=dict)  # only dirs that exist

    def source(self) -> dict:
        return {
            "input_path": str(self.input_path),
            "html_file": self.messages_html.name,
            "assets": {name: str(p) for name, p in self.assets.items()},
        }


def resolve_input(path: str | Path) -> ResolvedInput:
    """Resolve a messages.html path or an export folder."""
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        raise InputNotFoundError(f"Input not found: {resolved}")

    if resolved.is_file():
        name = resolved.name
        if name not in EXPORT_HTML_CANDIDATES and not name.lower().endswith(".html"):
            raise NoHtmlFoundError(
                f"Input file must be one of [{', '.join(EXPORT_HTML_CANDIDATES)}] "
                f"or *.html, got: {name}"
            )
        root = resolved.parent
        LOGGER.debug("Resolved file input %s (export root %s)", resolved, root)
        return ResolvedInput(
            kind="file",
            input_path=resolved,
            export_root=root,
            messages_html=resolved,
            assets=_probe_assets(root),
        )

    if resolved.is_dir():
        html = _find_html_in_dir(resolved)
        if html is None:
            raise NoHtmlFoundError(
                f"Export folder has no transcript HTML "
                f"(tried {', '.join(EXPORT_HTML_CANDIDATES)}, messages*.html, "
                f"message-block scan): {resolved}"
            )
        LOGGER.debug("Resolved dir input %s -> %s", resolved, html)
        return ResolvedInput(
            kind="dir",
            input_path=resolved,
            export_root=resolved,
            messages_html=html,
            assets=_probe_assets(resolved),
        )

    raise NoHtmlFoundError(f"Input is neither file nor directory: {resolved}")


def _find_html_in_dir(root: Path) -> Path | None:
    for candidate in EXPORT_HTML_CANDIDATES:
        p = root / candidate
        if p.is_file():
            return p.resolve()

    for p in sorted(root.glob("messages*.html")):
        if p.is_file():
            return p.resolve()

    top_level = _html_files(root)
    nested: list[Path] = []
    for sub in sorted(p for p in root.iterdir() if p.is_dir()):
        nested.extend(_html_files(sub))
    for p in [*top_level, *nested]:
        if _has_message_marker(p):
            LOGGER.debug("Message-block marker found in %s", p)
            return p.resolve()
    return None


def _html_files(directory: Path) -> list[Path]:
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        LOGGER.debug("Skipping unreadable %s: %s", directory, exc)
        return []
    return sorted(p for p in entries if p.is_file() and p.suffix.lower() == ".html")


def _has_message_marker(path: Path) -> bool:
    try:
        raw = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        LOGGER.debug("Skipping unreadable %s: %s", path, exc)
        return False
    return _MESSAGE_MARKER.search(raw) is not None


def _probe_assets(root: Path) -> dict[str, Path]:
    return {
        name: (root / name).resolve()
        for name in ASSET_DIR_NAMES
        if (root / name).is_dir()
    }
