"""Agents module: the LangGraph meeting-notes pipeline."""

from .errors import (
    ErrorContext,
    ErrorKind,
    MeetingPipelineError,
    classify_error,
    format_error,
)
from .graph import MeetingPipeline, process_meeting
from .state import PipelineState

__all__ = [
    "ErrorContext",
    "ErrorKind",
    "MeetingPipeline",
    "MeetingPipelineError",
    "PipelineState",
    "classify_error",
    "format_error",
    "process_meeting",
]
