"""Unit tests for MeetingExtractor.

Covers sequential per-chunk requests, propagation of summary_for_next_chunk,
prompt contents, request parameters, validation of model output, error
classification with chunk position, and quote anchoring.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from meeting_notes.agents.errors import ErrorKind, MeetingPipelineError
from meeting_notes.agents.nodes.extractor import (
    EXTRACTION_SYSTEM_PROMPT,
    MeetingExtractor,
    build_extraction_prompt,
    unanchored_quotes,
)
from meeting_notes.models import ChunkExtraction, ExtractedDecision, TranscriptChunk

from .conftest import FakeLLM


# ── Fixtures ─────────────────────────────────────────────────────────────────


def _chunk(index: int, content: str, overlap: str | None = None, speakers=None) -> TranscriptChunk:
    return TranscriptChunk(
        index=index,
        content=content,
        start_offset=index * 100,
        end_offset=index * 100 + len(content),
        speakers_present=speakers or [],
        has_overlap=overlap is not None,
        overlap_content=overlap,
    )


def _extraction(summary: str, **overrides) -> ChunkExtraction:
    return ChunkExtraction(summary_for_next_chunk=summary, **overrides)


# ── Extraction loop ──────────────────────────────────────────────────────────


class TestExtractFromChunks:
    """Tests for the sequential extraction loop."""

    @pytest.mark.asyncio
    async def test_one_extraction_per_chunk_in_order(self, settings):
        chunks = [_chunk(i, f"Alice: part {i}") for i in range(3)]
        llm = FakeLLM({ChunkExtraction: [_extraction(f"summary {i}") for i in range(3)]})

        result = await MeetingExtractor(llm, settings).extract_from_chunks(chunks)

        assert result.total_chunks == 3
        assert [e.summary_for_next_chunk for e in result.extractions] == [
            "summary 0",
            "summary 1",
            "summary 2",
        ]
        assert len(llm.calls) == 3

    @pytest.mark.asyncio
    async def test_each_prompt_carries_previous_summary(self, settings):
        chunks = [_chunk(i, f"Alice: part {i}") for i in range(3)]
        llm = FakeLLM({ChunkExtraction: [_extraction(f"summary {i}") for i in range(3)]})

        await MeetingExtractor(llm, settings).extract_from_chunks(chunks)

        prompts = [c.prompt for c in llm.calls]
        assert "CONTEXT FROM PREVIOUS SECTION" not in prompts[0]
        assert "CONTEXT FROM PREVIOUS SECTION:\nsummary 0" in prompts[1]
        assert "CONTEXT FROM PREVIOUS SECTION:\nsummary 1" in prompts[2]

    @pytest.mark.asyncio
    async def test_request_parameters(self, settings):
        llm = FakeLLM({ChunkExtraction: [_extraction("done")]})

        await MeetingExtractor(llm, settings).extract_from_chunks([_chunk(0, "Alice: hi")])

        call = llm.calls[0]
        assert call.schema is ChunkExtraction
        assert call.temperature == 0.1
        assert call.max_tokens == settings.extraction_max_tokens
        assert call.timeout_ms == settings.ai_request_timeout_ms
        assert call.system == EXTRACTION_SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_accepts_dict_responses(self, settings):
        response = {
            "decisions": [{"decision": "Ship it", "quote": "Let's ship it"}],
            "summary_for_next_chunk": "Shipping agreed.",
        }
        llm = FakeLLM({ChunkExtraction: [response]})

        result = await MeetingExtractor(llm, settings).extract_from_chunks(
            [_chunk(0, "Alice: Let's ship it")]
        )

        assert result.extractions[0].decisions[0].decision == "Ship it"

    @pytest.mark.asyncio
    async def test_delay_only_between_chunks(self, settings):
        settings = settings.model_copy(update={"inter_chunk_delay_ms": 250})
        chunks = [_chunk(i, f"Alice: part {i}") for i in range(3)]
        llm = FakeLLM({ChunkExtraction: [_extraction(f"s{i}") for i in range(3)]})

        with patch(
            "meeting_notes.agents.nodes.extractor.asyncio.sleep", new_callable=AsyncMock
        ) as sleep:
            await MeetingExtractor(llm, settings).extract_from_chunks(chunks)

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.25)

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_requests(self, settings):
        llm = FakeLLM()
        result = await MeetingExtractor(llm, settings).extract_from_chunks([])

        assert result.extractions == []
        assert result.total_chunks == 0
        assert llm.calls == []


# ── Failures ─────────────────────────────────────────────────────────────────


class TestExtractionFailures:
    """A failing chunk fails the stage with chunk position attached."""

    @pytest.mark.asyncio
    async def test_failure_stops_and_reports_chunk(self, settings):
        chunks = [_chunk(i, f"Alice: part {i}") for i in range(3)]
        llm = FakeLLM(
            {ChunkExtraction: [_extraction("s0"), RuntimeError("upstream exploded"), _extraction("s2")]}
        )

        with pytest.raises(MeetingPipelineError) as exc_info:
            await MeetingExtractor(llm, settings).extract_from_chunks(chunks)

        error = exc_info.value
        assert error.stage == "extraction"
        assert error.kind is ErrorKind.UNCLASSIFIED
        assert error.context.chunk_index == 2
        assert error.context.total_chunks == 3
        assert error.context.model == "fake-model"
        assert "upstream exploded" in error.message
        assert isinstance(error.__cause__, RuntimeError)
        assert len(llm.calls) == 2

    @pytest.mark.asyncio
    async def test_timeout_classified(self, settings):
        llm = FakeLLM({ChunkExtraction: [TimeoutError()]})

        with pytest.raises(MeetingPipelineError) as exc_info:
            await MeetingExtractor(llm, settings).extract_from_chunks([_chunk(0, "Alice: hi")])

        assert exc_info.value.kind is ErrorKind.TIMEOUT
        assert exc_info.value.context.timeout_ms == settings.ai_request_timeout_ms

    @pytest.mark.asyncio
    async def test_empty_summary_before_last_chunk_fails(self, settings):
        chunks = [_chunk(0, "Alice: one"), _chunk(1, "Bob: two")]
        llm = FakeLLM({ChunkExtraction: [_extraction("  "), _extraction("s1")]})

        with pytest.raises(MeetingPipelineError) as exc_info:
            await MeetingExtractor(llm, settings).extract_from_chunks(chunks)

        assert exc_info.value.context.chunk_index == 1
        assert "summary_for_next_chunk" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_empty_summary_on_last_chunk_allowed(self, settings):
        llm = FakeLLM({ChunkExtraction: [_extraction("")]})

        result = await MeetingExtractor(llm, settings).extract_from_chunks([_chunk(0, "Alice: hi")])

        assert result.extractions[0].summary_for_next_chunk == ""

    @pytest.mark.asyncio
    async def test_missing_quote_fails_validation(self, settings):
        response = {
            "decisions": [{"decision": "Ship it", "quote": ""}],
            "summary_for_next_chunk": "Shipping agreed.",
        }
        llm = FakeLLM({ChunkExtraction: [response]})

        with pytest.raises(MeetingPipelineError) as exc_info:
            await MeetingExtractor(llm, settings).extract_from_chunks([_chunk(0, "Alice: hi")])

        assert exc_info.value.stage == "extraction"
        assert exc_info.value.kind is ErrorKind.UNCLASSIFIED


# ── Prompt and anchoring ─────────────────────────────────────────────────────


class TestPromptAndAnchoring:
    """Tests for prompt building and quote anchoring."""

    def test_prompt_contains_section_speakers_and_overlap_preview(self):
        chunk = _chunk(1, "Bob: we agreed", overlap="x" * 500, speakers=["Alice", "Bob"])
        prompt = build_extraction_prompt(chunk, "earlier context", total=4)

        assert "TRANSCRIPT SECTION 2 of 4:" in prompt
        assert "Speakers in this section: Alice, Bob" in prompt
        assert "Bob: we agreed" in prompt
        assert "[Section continues with: " + "x" * 200 + "...]" in prompt
        assert "x" * 201 not in prompt

    def test_quotes_found_case_and_whitespace_insensitively(self):
        chunk = _chunk(0, "Sarah: Let's   go with\nReact for the frontend.")
        extraction = _extraction(
            "s",
            decisions=[
                ExtractedDecision(decision="React", quote="let's go with react for the frontend"),
                ExtractedDecision(decision="Vue", quote="We pick Vue"),
            ],
        )

        assert unanchored_quotes(extraction, chunk) == ["We pick Vue"]

    def test_quotes_in_overlap_are_anchored(self):
        chunk = _chunk(0, "Sarah: hello", overlap="Mike: I'll do the wireframes")
        extraction = _extraction(
            "s", decisions=[ExtractedDecision(decision="x", quote="I'll do the wireframes")]
        )

        assert unanchored_quotes(extraction, chunk) == []
