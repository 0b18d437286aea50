"""Pydantic models for the meeting notes pipeline."""

from .schemas import (
    ActionItem,
    ChunkExtraction,
    Decision,
    EditingResult,
    ExtractedActionItem,
    ExtractedDecision,
    ExtractedDeliverable,
    FinalOutput,
    KeyDiscussionPoint,
    MeetingMetadata,
    MeetingNotes,
    MeetingResources,
    PRDDocument,
    PRDDraft,
    PRDDraftRequirement,
    PRDRequirement,
    PRDTimeline,
    ProcessedMeeting,
    ProcessingStats,
    RefinedActionItem,
    RefinedDecision,
    RefinedDeliverable,
    RefinedMeeting,
    TranscriptChunk,
    UNASSIGNED_OWNER,
)

__all__ = [
    "ActionItem",
    "ChunkExtraction",
    "Decision",
    "EditingResult",
    "ExtractedActionItem",
    "ExtractedDecision",
    "ExtractedDeliverable",
    "FinalOutput",
    "KeyDiscussionPoint",
    "MeetingMetadata",
    "MeetingNotes",
    "MeetingResources",
    "PRDDocument",
    "PRDDraft",
    "PRDDraftRequirement",
    "PRDRequirement",
    "PRDTimeline",
    "ProcessedMeeting",
    "ProcessingStats",
    "RefinedActionItem",
    "RefinedDecision",
    "RefinedDeliverable",
    "RefinedMeeting",
    "TranscriptChunk",
    "UNASSIGNED_OWNER",
]
