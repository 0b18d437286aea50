"""
Transcript Chunker - Split Transcripts into Model-Sized Segments

This is the first stage of the pipeline. It never calls a model.

=============================================================================
WHAT IT DOES:
=============================================================================

1. Normalizes line endings and blank-line runs
2. Splits the transcript into chunks of at most ``chunk_size`` estimated
   tokens, preferring to cut where a speaker starts talking
3. Attaches read-only lookahead (``overlap_content``) to every non-final chunk
4. Records which speakers are active in each chunk
5. Scans title / date / attendees for the meeting header

Example:
    Input:
        "[00:00] Sarah: Welcome everyone.
         [00:15] Mike: Thanks Sarah. ..."

    Output (short transcript):
        [TranscriptChunk(index=0, content="...", start_offset=0,
                         end_offset=1234, speakers_present=["Sarah", "Mike"])]

=============================================================================
"""

import logging
import math
import re
from typing import Optional

from ...config import Settings
from ...models import MeetingMetadata, TranscriptChunk
from ..errors import transcript_error

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4000
DEFAULT_OVERLAP_SIZE = 200

# 1 token ~= 4 characters
CHARS_PER_TOKEN = 4

# Cut points are searched for in the last N characters of a window
BREAK_SEARCH_WINDOW = 500

# How far back to look for the speaker active at a chunk boundary
SPEAKER_LOOKBACK = 5000

MIN_TRANSCRIPT_LENGTH = 100
BINARY_SNIFF_LENGTH = 1000

# Optional "[00:15]" / "00:15:30" timestamp, then "Speaker Name:"
SPEAKER_LINE_PATTERN = re.compile(r"^(?:\[?\d{1,2}:\d{2}(?::\d{2})?\]?\s*)?([A-Z][a-zA-Z\s.'-]+):\s*")

_NOT_A_SPEAKER = [
    re.compile(r"^(the|a|an|this|that|it|he|she|they|we|you|i)$", re.IGNORECASE),
    re.compile(r"^(okay|ok|yes|no|yeah|nope|sure|well|so|but|and|or)$", re.IGNORECASE),
    re.compile(r"^\d+$"),
    re.compile(r"^[A-Z]$"),
]

_TITLE_PATTERNS = [
    re.compile(r"^#\s*(.+)$", re.MULTILINE),
    re.compile(r"^(?:meeting|call|discussion):\s*(.+)$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^(?:subject|topic|re):\s*(.+)$", re.MULTILINE | re.IGNORECASE),
]

_DATE_PATTERNS = [
    re.compile(r"(\d{4}-\d{2}-\d{2})"),
    re.compile(r"(\w+\s+\d{1,2},?\s+\d{4})"),
    re.compile(r"(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})"),
]

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")

_SENTENCE_ENDERS = (". ", "! ", "? ")


def validate_transcript(content: str) -> int:
    """
    Reject transcripts that cannot be meaningfully processed.

    Runs before any model request is made.

    Returns:
        Character count of the transcript

    Raises:
        MeetingPipelineError: kind TRANSCRIPT, stage "chunking"
    """
    if not content or not content.strip():
        raise transcript_error("Transcript is empty")

    if len(content) < MIN_TRANSCRIPT_LENGTH:
        raise transcript_error(
            f"Transcript is too short ({len(content)} characters). "
            f"A meeting transcript needs at least {MIN_TRANSCRIPT_LENGTH} characters."
        )

    if _CONTROL_CHARS.search(content[:BINARY_SNIFF_LENGTH]):
        raise transcript_error("Transcript appears to be a binary file, not text")

    return len(content)


def normalize_transcript(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def is_valid_speaker_name(name: str) -> bool:
    if len(name) < 2 or len(name) > 50:
        return False
    return not any(pattern.match(name) for pattern in _NOT_A_SPEAKER)


def extract_speakers(text: str) -> list[str]:
    """Distinct valid speaker labels in order of first appearance."""
    speakers: list[str] = []
    for line in text.split("\n"):
        match = SPEAKER_LINE_PATTERN.match(line)
        if match:
            name = match.group(1).strip()
            if is_valid_speaker_name(name) and name not in speakers:
                speakers.append(name)
    return speakers


class TranscriptChunker:
    """
    Splits a transcript into contiguous, offset-addressed chunks.

    USAGE:
    ------
        chunker = TranscriptChunker(chunk_size=4000, overlap_size=200)
        chunks = chunker.chunk(transcript)
        metadata = chunker.extract_metadata(transcript)

    Sizes are in estimated tokens. Offsets refer to the normalized text.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap_size: int = DEFAULT_OVERLAP_SIZE,
        preserve_speaker_context: bool = True,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if overlap_size < 0:
            raise ValueError("overlap_size must not be negative")

        self.chunk_size = chunk_size
        self.overlap_size = overlap_size
        self.preserve_speaker_context = preserve_speaker_context

    @classmethod
    def from_settings(cls, settings: Settings) -> "TranscriptChunker":
        return cls(
            chunk_size=settings.chunk_size,
            overlap_size=settings.chunk_overlap,
            preserve_speaker_context=settings.preserve_speaker_context,
        )

    # =========================================================================
    # Chunking
    # =========================================================================

    def chunk(self, transcript: str) -> list[TranscriptChunk]:
        text = normalize_transcript(transcript)

        if estimate_tokens(text) <= self.chunk_size:
            return [
                TranscriptChunk(
                    index=0,
                    content=text,
                    start_offset=0,
                    end_offset=len(text),
                    speakers_present=extract_speakers(text),
                )
            ]

        chunks = self._split(text)
        logger.debug(f"Split {len(text)} characters into {len(chunks)} chunks")
        return chunks

    def _split(self, text: str) -> list[TranscriptChunk]:
        target_length = self.chunk_size * CHARS_PER_TOKEN
        overlap_length = self.overlap_size * CHARS_PER_TOKEN

        chunks: list[TranscriptChunk] = []
        position = 0

        while position < len(text):
            end = min(position + target_length, len(text))
            if end < len(text):
                end = self._find_break_point(text, position, end)

            overlap: Optional[str] = None
            if end < len(text) and overlap_length > 0:
                overlap = text[end : end + overlap_length]

            content = text[position:end]
            speakers = extract_speakers(content)

            if self.preserve_speaker_context and chunks:
                previous = self._last_speaker_before(text, position)
                if previous and previous not in speakers:
                    speakers.insert(0, previous)

            chunks.append(
                TranscriptChunk(
                    index=len(chunks),
                    content=content,
                    start_offset=position,
                    end_offset=end,
                    speakers_present=speakers,
                    has_overlap=overlap is not None,
                    overlap_content=overlap,
                )
            )
            position = end

        return chunks

    def _find_break_point(self, text: str, start: int, target_end: int) -> int:
        """
        Pick where the chunk [start, target_end) should actually end.

        Preference order inside the search window: start of the last speaker
        line, after the last blank line, after the last newline, after the
        last sentence ender, else ``target_end``. A candidate that would leave
        the chunk empty is skipped.
        """
        window = min(BREAK_SEARCH_WINDOW, target_end - start)
        search_start = max(start, target_end - window)
        search_text = text[search_start:target_end]

        candidates = []

        speaker_break = self._last_speaker_line_offset(search_text)
        if speaker_break != -1:
            candidates.append(search_start + speaker_break)

        paragraph = search_text.rfind("\n\n")
        if paragraph != -1:
            candidates.append(search_start + paragraph + 2)

        line = search_text.rfind("\n")
        if line != -1:
            candidates.append(search_start + line + 1)

        sentence = max(search_text.rfind(ender) for ender in _SENTENCE_ENDERS)
        if sentence != -1:
            candidates.append(search_start + sentence + 2)

        for candidate in candidates:
            if candidate > start:
                return candidate
        return target_end

    @staticmethod
    def _last_speaker_line_offset(text: str) -> int:
        last = -1
        offset = 0
        for line in text.split("\n"):
            if SPEAKER_LINE_PATTERN.match(line):
                last = offset
            offset += len(line) + 1
        return last

    @staticmethod
    def _last_speaker_before(text: str, position: int) -> Optional[str]:
        before = text[max(0, position - SPEAKER_LOOKBACK) : position]
        for line in reversed(before.split("\n")):
            match = SPEAKER_LINE_PATTERN.match(line)
            if match:
                name = match.group(1).strip()
                if is_valid_speaker_name(name):
                    return name
        return None

    # =========================================================================
    # Counting
    # =========================================================================

    def get_chunk_count(self, transcript: str) -> int:
        """Exact number of chunks ``chunk`` would return."""
        text = normalize_transcript(transcript)
        if estimate_tokens(text) <= self.chunk_size:
            return 1
        return len(self._split(text))

    def estimate_chunk_count(self, transcript: str) -> int:
        """Cheap upper-bound style preview; may differ from ``get_chunk_count``."""
        tokens = estimate_tokens(normalize_transcript(transcript))
        if tokens <= self.chunk_size:
            return 1
        effective_overlap = min(self.overlap_size, self.chunk_size / 2)
        step = self.chunk_size - effective_overlap
        return math.ceil(tokens / step)

    # =========================================================================
    # Metadata
    # =========================================================================

    def extract_metadata(self, transcript: str) -> MeetingMetadata:
        return MeetingMetadata(
            title=self._extract_title(transcript),
            date=self._extract_date(transcript),
            attendees=extract_speakers(transcript),
            source="transcript",
        )

    @staticmethod
    def _extract_title(text: str) -> Optional[str]:
        head = text[:500]
        for pattern in _TITLE_PATTERNS:
            match = pattern.search(head)
            if match:
                return match.group(1).strip()
        return None

    @staticmethod
    def _extract_date(text: str) -> Optional[str]:
        for pattern in _DATE_PATTERNS:
            match = pattern.search(text)
            if match:
                return match.group(1)
        return None


def create_chunker(
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap_size: int = DEFAULT_OVERLAP_SIZE,
    preserve_speaker_context: bool = True,
) -> TranscriptChunker:
    return TranscriptChunker(
        chunk_size=chunk_size,
        overlap_size=overlap_size,
        preserve_speaker_context=preserve_speaker_context,
    )
