"""Chat Highlights — find, score and vet the noteworthy span of an exported chat."""

from .errors import ChatHighlightsError, InputNotFoundError, NoHtmlFoundError, InvalidProfileError
from .pipeline import run, write_artifacts, diagnose, PipelineResult, Diagnosis
from .redactor import Redactor, RedactorConfig
from .config import load_config, load_from_yaml, run_with_config
from .profile import load_profile, ExtractionProfile
from .types import Message, Sender, SanitizedTranscript, Segment, ScoredSegment, SegmentsTopK, LintReport

__all__ = [
    "run", "write_artifacts", "diagnose", "PipelineResult", "Diagnosis",
    "Redactor", "RedactorConfig",
    "load_config", "load_from_yaml", "run_with_config",
    "load_profile", "ExtractionProfile",
    "Message", "Sender", "SanitizedTranscript", "Segment", "ScoredSegment", "SegmentsTopK", "LintReport",
    "ChatHighlightsError", "InputNotFoundError", "NoHtmlFoundError", "InvalidProfileError",
]
__version__ = "0.1.0"
