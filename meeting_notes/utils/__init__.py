"""Utility functions for the meeting notes pipeline."""

from .formatters import (
    FormatterOptions,
    format_as_json,
    format_as_markdown,
    format_decisions_list,
    format_notes_as_markdown,
    format_open_questions_list,
    format_output,
    format_prd_as_markdown,
)
from .helpers import format_count, format_duration, run_with_timeout, truncate_text

__all__ = [
    "FormatterOptions",
    "format_as_json",
    "format_as_markdown",
    "format_count",
    "format_decisions_list",
    "format_duration",
    "format_notes_as_markdown",
    "format_open_questions_list",
    "format_output",
    "format_prd_as_markdown",
    "run_with_timeout",
    "truncate_text",
]
