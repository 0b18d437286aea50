"""
Extractor Node - Per-Chunk Structured Extraction

Second stage of the pipeline. Sends each chunk to the model, one at a time,
and collects decisions, action items, deliverables and key points.

=============================================================================
WHY SEQUENTIAL:
=============================================================================

The prompt for chunk N+1 includes the ``summary_for_next_chunk`` the model
wrote for chunk N. That summary is the only way context crosses a chunk
boundary, so chunk requests can never run concurrently.

    running_summary = ""
    for chunk in chunks:
        extraction = extract(chunk, running_summary)
        running_summary = extraction.summary_for_next_chunk

A failed chunk fails the whole stage; nothing extracted so far is returned.
=============================================================================
"""

import asyncio
import logging
import time
from typing import Optional

from pydantic import BaseModel

from ...config import Settings, get_settings
from ...models import ChunkExtraction, TranscriptChunk
from ...services import (
    LLMService,
    PipelineProgress,
    SilentProgress,
    StructuredModelClient,
    create_messages,
    revalidate,
)
from ..errors import ErrorContext, classify_error

logger = logging.getLogger(__name__)

EXTRACTION_TEMPERATURE = 0.1

OVERLAP_PREVIEW_LENGTH = 200

EXTRACTION_SYSTEM_PROMPT = """You are an expert meeting analyst. Your task is to extract structured information from meeting transcript segments.

For each chunk, you must:
1. Identify decisions that were made (explicit agreements, approvals, or choices)
2. Find action items (tasks assigned to specific people)
3. Note deliverables (features, products, or outputs discussed)
4. Capture key discussion points

CRITICAL REQUIREMENTS:
- Every decision, action item, and deliverable MUST include a direct quote from the transcript that supports it
- The quote should be the actual words spoken, not a paraphrase
- Only extract items that are clearly stated, not implied
- If context from previous sections is provided, use it to maintain continuity
- Be concise but complete in your extractions
- End with a 2-3 sentence summary that passes context to the next section"""


class ExtractionResult(BaseModel):
    extractions: list[ChunkExtraction]
    total_chunks: int
    processing_time_ms: int


class MeetingExtractor:
    """
    Runs one structured-extraction request per chunk, in order.

    USAGE:
    ------
        extractor = MeetingExtractor(llm_service=llm, settings=settings)
        result = await extractor.extract_from_chunks(chunks)
        assert len(result.extractions) == len(chunks)
    """

    def __init__(
        self,
        llm_service: Optional[StructuredModelClient] = None,
        settings: Optional[Settings] = None,
        progress: Optional[PipelineProgress] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.llm = llm_service or LLMService(self.settings)
        self.progress = progress or SilentProgress()

    async def extract_from_chunks(self, chunks: list[TranscriptChunk]) -> ExtractionResult:
        started = time.perf_counter()
        total = len(chunks)
        extractions: list[ChunkExtraction] = []
        running_summary = ""

        self.progress.debug(f"Starting extraction for {total} chunks")

        for position, chunk in enumerate(chunks):
            self.progress.update_with_count(position + 1, total, "Extracting from chunks")
            self.progress.debug(
                f"Chunk {position + 1}/{total}: {len(chunk.content)} characters, "
                f"speakers: {', '.join(chunk.speakers_present) or 'unknown'}"
            )

            extraction = await self._extract_from_chunk(chunk, running_summary, total)
            extractions.append(extraction)
            running_summary = extraction.summary_for_next_chunk

            self.progress.debug(
                f"Chunk {position + 1} results: {len(extraction.decisions)} decisions, "
                f"{len(extraction.action_items)} action items, "
                f"{len(extraction.deliverables)} deliverables, "
                f"{len(extraction.key_points)} key points"
            )

            if position < total - 1 and self.settings.inter_chunk_delay_ms > 0:
                await asyncio.sleep(self.settings.inter_chunk_delay_ms / 1000)

        processing_time_ms = round((time.perf_counter() - started) * 1000)
        self._log_totals(extractions, processing_time_ms)

        return ExtractionResult(
            extractions=extractions,
            total_chunks=total,
            processing_time_ms=processing_time_ms,
        )

    async def _extract_from_chunk(
        self,
        chunk: TranscriptChunk,
        running_summary: str,
        total: int,
    ) -> ChunkExtraction:
        number = chunk.index + 1
        context = ErrorContext(
            chunk_index=number,
            total_chunks=total,
            model=self.llm.model_name,
            provider=self.llm.provider,
            timeout_ms=self.settings.ai_request_timeout_ms,
        )
        prompt = build_extraction_prompt(chunk, running_summary, total)
        messages = create_messages(prompt, EXTRACTION_SYSTEM_PROMPT)

        started = time.perf_counter()
        try:
            response = await self.llm.generate_structured(
                messages,
                ChunkExtraction,
                temperature=EXTRACTION_TEMPERATURE,
                max_tokens=self.settings.extraction_max_tokens,
                timeout_ms=self.settings.ai_request_timeout_ms,
            )
            extraction = revalidate(response, ChunkExtraction)
            if number < total and not extraction.summary_for_next_chunk.strip():
                raise ValueError(
                    f"Extraction for chunk {number} returned an empty summary_for_next_chunk"
                )
        except Exception as exc:
            latency_ms = round((time.perf_counter() - started) * 1000)
            logger.error(
                f"Extraction failed for chunk {number}/{total} after {latency_ms}ms: {exc}",
                extra={"stage": "extraction", "chunk": number, "total_chunks": total},
            )
            raise classify_error(exc, "extraction", context) from exc

        latency_ms = round((time.perf_counter() - started) * 1000)
        logger.info(
            f"Extracted chunk {number}/{total} in {latency_ms}ms",
            extra={
                "stage": "extraction",
                "chunk": number,
                "total_chunks": total,
                "latency_ms": latency_ms,
            },
        )

        for quote in unanchored_quotes(extraction, chunk):
            logger.debug(f"Quote not found verbatim in chunk {number}: {quote!r}")

        return extraction

    def _log_totals(self, extractions: list[ChunkExtraction], processing_time_ms: int) -> None:
        decisions = sum(len(e.decisions) for e in extractions)
        actions = sum(len(e.action_items) for e in extractions)
        deliverables = sum(len(e.deliverables) for e in extractions)
        key_points = sum(len(e.key_points) for e in extractions)

        logger.info(
            f"Extraction complete: {decisions} decisions, {actions} action items, "
            f"{deliverables} deliverables from {len(extractions)} chunks",
            extra={"stage": "extraction", "latency_ms": processing_time_ms},
        )
        self.progress.debug(f"Total decisions: {decisions}")
        self.progress.debug(f"Total action items: {actions}")
        self.progress.debug(f"Total deliverables: {deliverables}")
        self.progress.debug(f"Total key points: {key_points}")


def build_extraction_prompt(chunk: TranscriptChunk, running_summary: str, total: int) -> str:
    parts = []

    if running_summary:
        parts.append(f"CONTEXT FROM PREVIOUS SECTION:\n{running_summary}\n")

    parts.append(f"TRANSCRIPT SECTION {chunk.index + 1} of {total}:")

    if chunk.speakers_present:
        parts.append(f"Speakers in this section: {', '.join(chunk.speakers_present)}")

    parts.append(f"\n{chunk.content}")

    if chunk.has_overlap and chunk.overlap_content:
        preview = chunk.overlap_content[:OVERLAP_PREVIEW_LENGTH]
        parts.append(f"\n[Section continues with: {preview}...]")

    parts.append(
        "\nExtract all decisions, action items, deliverables, and key points from this "
        "transcript section. Include direct quotes to support each extraction."
    )
    return "\n".join(parts)


def _squash(text: str) -> str:
    return " ".join(text.split()).lower()


def unanchored_quotes(extraction: ChunkExtraction, chunk: TranscriptChunk) -> list[str]:
    """Quotes that do not appear (whitespace/case-insensitively) in the chunk or its overlap."""
    haystack = _squash(chunk.content + " " + (chunk.overlap_content or ""))
    quotes = (
        [d.quote for d in extraction.decisions]
        + [a.quote for a in extraction.action_items]
        + [d.quote for d in extraction.deliverables]
    )
    return [q for q in quotes if _squash(q) not in haystack]
