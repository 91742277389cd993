"""YAML/dict config loader for chat-highlights.

Supports loading from a YAML file or a plain dict (for embedding in a
larger config, e.g. the watcher's).

Example YAML:

    chat_highlights:
      tz: Asia/Tokyo
      top_k: 3
      profile: profiles/extractors/telegram_export_v1.json   # omit for bundled
      redaction:
        use_presidio: false
        language: en
        score_threshold: 0.35
        entities:
          - PERSON
"""

from __future__ import annotations
from pathlib import Path
from typing import Any

from .pipeline import PipelineResult, run
from .redactor import RedactorConfig

DEFAULT_TZ = "Asia/Tokyo"
DEFAULT_TOP_K = 3


def load_config(data: dict[str, Any]) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    # Support nested under "chat_highlights" key or flat
    if "chat_highlights" in data:
        data = data["chat_highlights"] or {}

    redaction = data.get("redaction", {}) or {}
    top_k = int(data.get("top_k", DEFAULT_TOP_K))
    if top_k < 1:
        raise ValueError(f"top_k must be >= 1, got {top_k}")

    return {
        "tz": data.get("tz", DEFAULT_TZ),
        "top_k": top_k,
        "profile": data.get("profile"),
        "use_presidio": redaction.get("use_presidio", False),
        "language": redaction.get("language", "en"),
        "score_threshold": redaction.get("score_threshold", 0.35),
        "entities": redaction.get("entities"),
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    import yaml
    with open(path) as f:
        return load_config(yaml.safe_load(f) or {})


def build_redactor_config(cfg: dict[str, Any]) -> RedactorConfig:
    return RedactorConfig(
        use_presidio=cfg["use_presidio"],
        language=cfg["language"],
        score_threshold=cfg["score_threshold"],
        presidio_entities=cfg.get("entities"),
    )


def run_with_config(
    input: str | Path,
    episode_id: str,
    config: dict[str, Any],
) -> PipelineResult:
    """Run the pipeline with settings from a (raw or normalized) config dict."""
    cfg = config if "use_presidio" in config else load_config(config)
    return run(
        input,
        episode_id,
        cfg["top_k"],
        cfg["tz"],
        cfg["profile"],
        redactor_config=build_redactor_config(cfg),
    )
