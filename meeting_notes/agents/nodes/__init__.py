"""Pipeline stages for meeting-notes generation."""

from .chunker import TranscriptChunker, create_chunker, validate_transcript
from .editor import EditorResult, MeetingEditor
from .extractor import ExtractionResult, MeetingExtractor
from .generator import GeneratorResult, MeetingGenerator
from .refiner import MeetingRefiner, RefinementResult

__all__ = [
    "EditorResult",
    "ExtractionResult",
    "GeneratorResult",
    "MeetingEditor",
    "MeetingExtractor",
    "MeetingGenerator",
    "MeetingRefiner",
    "RefinementResult",
    "TranscriptChunker",
    "create_chunker",
    "validate_transcript",
]
