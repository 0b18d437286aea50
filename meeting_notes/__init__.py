"""
Meeting notes pipeline.

Turns a raw meeting transcript into structured meeting notes (and a PRD when
deliverables were discussed) through a five-stage LangGraph pipeline.

    from meeting_notes import process_meeting

    processed = await process_meeting(transcript)
    print(processed.output.markdown)
"""

from .agents import ErrorKind, MeetingPipeline, MeetingPipelineError, format_error, process_meeting
from .models import FinalOutput, ProcessedMeeting

__all__ = [
    "ErrorKind",
    "FinalOutput",
    "MeetingPipeline",
    "MeetingPipelineError",
    "ProcessedMeeting",
    "format_error",
    "process_meeting",
]
