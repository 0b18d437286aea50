"""Shared fixtures for pipeline tests.

Provides:
- Settings with a dummy API key and no inter-chunk delay
- FakeLLM: a scripted StructuredModelClient that records every request
- Sample transcripts and canned model responses
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable

import pytest

from meeting_notes.config import Settings
from meeting_notes.models import (
    ChunkExtraction,
    EditingResult,
    ExtractedActionItem,
    ExtractedDecision,
    MeetingNotes,
    PRDDocument,
    RefinedActionItem,
    RefinedDecision,
    RefinedMeeting,
)
from meeting_notes.services import SilentProgress


# ── Fake model client ────────────────────────────────────────────────────────


@dataclass
class RecordedCall:
    schema: type
    messages: list
    temperature: float
    max_tokens: int
    timeout_ms: int

    @property
    def system(self) -> str:
        return self.messages[0].content

    @property
    def prompt(self) -> str:
        return self.messages[-1].content


class FakeLLM:
    """Scripted StructuredModelClient.

    ``script`` maps an output schema to a list of responses consumed in
    order. A response may be a value, an exception instance (raised), or a
    callable taking the request messages.
    """

    provider = "openai"
    model_name = "fake-model"

    def __init__(self, script: dict[type, list[Any]] | None = None) -> None:
        self.script = {schema: list(items) for schema, items in (script or {}).items()}
        self.calls: list[RecordedCall] = []

    def calls_for(self, schema: type) -> list[RecordedCall]:
        return [c for c in self.calls if c.schema is schema]

    async def generate_structured(
        self,
        messages,
        output_schema,
        *,
        temperature: float,
        max_tokens: int,
        timeout_ms: int,
    ):
        self.calls.append(RecordedCall(output_schema, messages, temperature, max_tokens, timeout_ms))

        queue = self.script.get(output_schema)
        if not queue:
            raise AssertionError(f"Unexpected request for {output_schema.__name__}")

        response = queue.pop(0)
        if isinstance(response, BaseException):
            raise response
        if callable(response) and not isinstance(response, type):
            return response(messages)
        return response


def echo_editing_result(changes: list[str] | None = None) -> Callable[[list], EditingResult]:
    """Editor response that returns the documents it was sent, unchanged."""

    def respond(messages) -> EditingResult:
        blocks = re.findall(r"```json\n(.*?)\n```", messages[-1].content, re.DOTALL)
        notes = MeetingNotes.model_validate(json.loads(blocks[0]))
        prd = PRDDocument.model_validate(json.loads(blocks[1])) if len(blocks) > 1 else None
        return EditingResult(notes=notes, prd=prd, changes_applied=changes or [])

    return respond


# ── Fixtures ─────────────────────────────────────────────────────────────────


SARAH_MIKE_TRANSCRIPT = """[00:00] Sarah: Thanks for joining, everyone. Today we need to settle the frontend stack for the new dashboard.
[00:12] Mike: I've been looking at React and Vue. Both would work for what we need.
[00:25] Priya: The team already knows React pretty well, so ramp-up would be faster.
[00:40] Sarah: Agreed. Let's go with React for the frontend.
[00:48] Sarah: Mike, can you have the wireframes ready by Friday?
[00:55] Mike: Yes, I'll have the wireframes ready by Friday.
[01:02] Priya: Sounds good, I'll start setting up the repo once the wireframes land.
"""


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        inter_chunk_delay_ms=0,
        ai_request_timeout_ms=30_000,
    )


@pytest.fixture
def progress() -> SilentProgress:
    return SilentProgress()


@pytest.fixture
def sarah_mike_transcript() -> str:
    return SARAH_MIKE_TRANSCRIPT


@pytest.fixture
def react_extraction() -> ChunkExtraction:
    return ChunkExtraction(
        decisions=[
            ExtractedDecision(
                decision="Use React for the frontend",
                made_by="Sarah",
                quote="Let's go with React for the frontend.",
            )
        ],
        action_items=[
            ExtractedActionItem(
                task="Have the wireframes ready",
                owner="Mike",
                deadline="Friday",
                quote="Mike, can you have the wireframes ready by Friday?",
            )
        ],
        key_points=["The team already knows React"],
        summary_for_next_chunk="The team chose React. Mike owns the wireframes due Friday.",
    )


@pytest.fixture
def react_refined() -> RefinedMeeting:
    return RefinedMeeting(
        decisions=[
            RefinedDecision(
                id="D1",
                decision="Use React for the frontend",
                made_by="Sarah",
                rationale="The team already knows React",
                quote="Let's go with React for the frontend.",
            )
        ],
        action_items=[
            RefinedActionItem(
                id="A1",
                task="Have the wireframes ready",
                owner="Mike",
                deadline="Friday",
                priority="high",
                quote="Mike, can you have the wireframes ready by Friday?",
            )
        ],
        meeting_summary="The team chose React for the dashboard frontend. Mike will deliver wireframes by Friday.",
        attendees=["Sarah", "Mike", "Priya"],
        open_questions=["Who will review the wireframes?"],
    )
