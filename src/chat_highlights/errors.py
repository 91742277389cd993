"""Fatal errors.  Anything that stops us producing a transcript lives here;
data quality problems are reported through the lint report instead."""

from __future__ import annotations


class ChatHighlightsError(Exception):
    """Base class for fatal pipeline errors."""


class InputNotFoundError(ChatHighlightsError):
    """The input path does not exist."""


class NoHtmlFoundError(ChatHighlightsError):
    """The input is not an HTML file, or a directory with no usable document."""


class InvalidProfileError(ChatHighlightsError):
    """The extraction profile is unreadable or missing required sections."""
