"""
Refiner Node - Consolidate Chunk Extractions

Third stage of the pipeline. Merges the per-chunk fragments into a single
canonical ``RefinedMeeting``:

    ChunkExtraction[]  ──(1 model request)──▶  RefinedMeeting  ──(post-pass)──▶  RefinedMeeting

The model does the judgement work (which fragments are the same decision,
which owner or deadline wins). A deterministic post-pass then enforces what
the rest of the pipeline relies on:

    - identifiers are D1.., A1.., DEL1.. in list order, without gaps
    - attendees include every speaker found by the chunker
    - open questions are not repeated
    - no deliverables appear when none were extracted
"""

import logging
import re
import time
from typing import Optional, TypeVar

from pydantic import BaseModel

from ...config import Settings, get_settings
from ...models import ChunkExtraction, RefinedMeeting
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

T = TypeVar("T", bound=BaseModel)

REFINEMENT_TEMPERATURE = 0.1

EMPTY_MEETING_SUMMARY = "No content was extracted from the meeting transcript."

REFINEMENT_SYSTEM_PROMPT = """You are an expert meeting analyst specializing in consolidating and refining meeting notes.

Your task is to take multiple extraction results from different sections of a meeting transcript and produce a single, cohesive set of refined meeting data.

CRITICAL REQUIREMENTS:

1. DEDUPLICATION:
   - Merge decisions that refer to the same topic even if worded differently
   - Combine action items that are duplicates or part of the same task
   - Consolidate deliverables that overlap or are subsets of each other
   - Keep the most complete version when merging

2. CONFLICT RESOLUTION:
   - If conflicting information exists, prefer later mentions (they often supersede earlier discussion)
   - If deadlines conflict, use the most specific or most recent one
   - If owners conflict, use the most explicit assignment

3. ID GENERATION:
   - D1, D2, D3... for decisions
   - A1, A2, A3... for action items
   - DEL1, DEL2, DEL3... for deliverables

4. ATTENDEES:
   - Identify all unique speakers/participants from the extractions
   - Use consistent name formatting

5. SUMMARY:
   - Write a concise 2-4 sentence executive summary
   - Focus on the most important outcomes and decisions

6. OPEN QUESTIONS:
   - Identify unresolved questions that need follow-up
   - Don't include questions that were answered during the meeting

7. QUALITY:
   - Preserve supporting quotes from the original extractions
   - Don't add information that is not in the extractions"""


class RefinementResult(BaseModel):
    refined: RefinedMeeting
    input_extraction_count: int
    processing_time_ms: int


class MeetingRefiner:
    """
    Turns fragments from every chunk into the canonical meeting record.

    USAGE:
    ------
        refiner = MeetingRefiner(llm_service=llm, settings=settings)
        result = await refiner.refine(extractions, known_attendees=["Sarah", "Mike"])
        result.refined.decisions[0].id  # "D1"
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

    async def refine(
        self,
        extractions: list[ChunkExtraction],
        known_attendees: Optional[list[str]] = None,
    ) -> RefinementResult:
        started = time.perf_counter()
        self._log_input_stats(extractions)

        if not extractions:
            logger.info("No extractions to refine", extra={"stage": "refinement"})
            return RefinementResult(
                refined=empty_refined_meeting(known_attendees),
                input_extraction_count=0,
                processing_time_ms=round((time.perf_counter() - started) * 1000),
            )

        context = ErrorContext(
            model=self.llm.model_name,
            provider=self.llm.provider,
            timeout_ms=self.settings.ai_request_timeout_ms,
        )
        prompt = build_refinement_prompt(extractions)
        self.progress.debug(f"Refinement prompt length: {len(prompt)} characters")

        try:
            response = await self.llm.generate_structured(
                create_messages(prompt, REFINEMENT_SYSTEM_PROMPT),
                RefinedMeeting,
                temperature=REFINEMENT_TEMPERATURE,
                max_tokens=self.settings.refinement_max_tokens,
                timeout_ms=self.settings.ai_request_timeout_ms,
            )
            refined = revalidate(response, RefinedMeeting)
        except Exception as exc:
            logger.error(f"Refinement failed: {exc}", extra={"stage": "refinement"})
            raise classify_error(exc, "refinement", context) from exc

        refined = normalize_refined_meeting(
            refined,
            known_attendees=known_attendees,
            decisions_extracted=any(e.decisions for e in extractions),
            actions_extracted=any(e.action_items for e in extractions),
            deliverables_extracted=any(e.deliverables for e in extractions),
        )

        processing_time_ms = round((time.perf_counter() - started) * 1000)
        logger.info(
            f"Refined {len(extractions)} extractions into {len(refined.decisions)} decisions, "
            f"{len(refined.action_items)} action items, {len(refined.deliverables)} deliverables",
            extra={"stage": "refinement", "latency_ms": processing_time_ms},
        )
        self.progress.debug(
            f"Attendees: {len(refined.attendees)}, open questions: {len(refined.open_questions)}"
        )

        return RefinementResult(
            refined=refined,
            input_extraction_count=len(extractions),
            processing_time_ms=processing_time_ms,
        )

    def _log_input_stats(self, extractions: list[ChunkExtraction]) -> None:
        self.progress.debug(f"Starting refinement for {len(extractions)} extractions")
        self.progress.debug(f"  Raw decisions: {sum(len(e.decisions) for e in extractions)}")
        self.progress.debug(f"  Raw action items: {sum(len(e.action_items) for e in extractions)}")
        self.progress.debug(f"  Raw deliverables: {sum(len(e.deliverables) for e in extractions)}")
        self.progress.debug(f"  Raw key points: {sum(len(e.key_points) for e in extractions)}")


def empty_refined_meeting(known_attendees: Optional[list[str]] = None) -> RefinedMeeting:
    return RefinedMeeting(
        meeting_summary=EMPTY_MEETING_SUMMARY,
        attendees=_merge_names([], known_attendees or []),
    )


# =============================================================================
# PROMPT
# =============================================================================


def build_refinement_prompt(extractions: list[ChunkExtraction]) -> str:
    """Every fragment, tagged with the (1-based) chunk it came from."""
    parts = [
        "EXTRACTED DATA FROM MEETING TRANSCRIPT CHUNKS:\n",
        f"Total chunks processed: {len(extractions)}\n",
        "---\n",
        "ALL DECISIONS:",
    ]

    decisions = [(n, d) for n, e in enumerate(extractions, start=1) for d in e.decisions]
    if not decisions:
        parts.append("\n(None extracted)\n")
    for n, d in decisions:
        parts.append(f"\n[Chunk {n}]")
        parts.append(f"Decision: {d.decision}")
        if d.made_by:
            parts.append(f"Made by: {d.made_by}")
        parts.append(f'Quote: "{d.quote}"')

    parts.extend(["", "---\n", "ALL ACTION ITEMS:"])
    actions = [(n, a) for n, e in enumerate(extractions, start=1) for a in e.action_items]
    if not actions:
        parts.append("\n(None extracted)\n")
    for n, a in actions:
        parts.append(f"\n[Chunk {n}]")
        parts.append(f"Task: {a.task}")
        if a.owner:
            parts.append(f"Owner: {a.owner}")
        if a.deadline:
            parts.append(f"Deadline: {a.deadline}")
        parts.append(f'Quote: "{a.quote}"')

    parts.extend(["", "---\n", "ALL DELIVERABLES:"])
    deliverables = [(n, d) for n, e in enumerate(extractions, start=1) for d in e.deliverables]
    if not deliverables:
        parts.append("\n(None extracted)\n")
    for n, d in deliverables:
        parts.append(f"\n[Chunk {n}]")
        parts.append(f"Name: {d.name}")
        parts.append(f"Description: {d.description}")
        if d.timeline:
            parts.append(f"Timeline: {d.timeline}")
        parts.append(f'Quote: "{d.quote}"')

    parts.extend(["", "---\n", "KEY POINTS FROM ALL CHUNKS:"])
    key_points = [f"[Chunk {n}] {kp}" for n, e in enumerate(extractions, start=1) for kp in e.key_points]
    if not key_points:
        parts.append("\n(None extracted)\n")
    parts.extend(f"- {kp}" for kp in key_points)

    parts.extend(["", "---\n", "CHUNK SUMMARIES (for context flow):"])
    for n, e in enumerate(extractions, start=1):
        parts.append(f"\n[Chunk {n}] {e.summary_for_next_chunk}")

    parts.append("\n\n---")
    parts.append(
        "Please consolidate the above extractions into a single refined meeting summary. "
        "Merge duplicates, resolve any conflicts, identify all attendees, and create a "
        "cohesive executive summary."
    )
    return "\n".join(parts)


# =============================================================================
# POST-PASS
# =============================================================================


def normalize_refined_meeting(
    refined: RefinedMeeting,
    known_attendees: Optional[list[str]] = None,
    decisions_extracted: bool = True,
    actions_extracted: bool = True,
    deliverables_extracted: bool = True,
) -> RefinedMeeting:
    """Renumber identifiers, merge attendees and dedupe open questions.

    A list the model returns when no chunk produced that kind of fragment has
    no quote to trace back to, so it is dropped.
    """
    return refined.model_copy(
        update={
            "decisions": _renumber(refined.decisions, "D", decisions_extracted, "decisions"),
            "action_items": _renumber(refined.action_items, "A", actions_extracted, "action items"),
            "deliverables": _renumber(
                refined.deliverables, "DEL", deliverables_extracted, "deliverables"
            ),
            "attendees": _merge_names(refined.attendees, known_attendees or []),
            "open_questions": _dedupe_questions(refined.open_questions),
        }
    )


def _renumber(items: list[T], prefix: str, extracted: bool, label: str) -> list[T]:
    if not extracted:
        if items:
            logger.warning(
                f"Dropping {len(items)} {label} with no extracted source",
                extra={"stage": "refinement"},
            )
        return []
    return [item.model_copy(update={"id": f"{prefix}{n}"}) for n, item in enumerate(items, start=1)]


def _merge_names(primary: list[str], extra: list[str]) -> list[str]:
    merged: list[str] = []
    seen: set[str] = set()
    for name in [*primary, *extra]:
        cleaned = name.strip()
        if cleaned and cleaned.casefold() not in seen:
            seen.add(cleaned.casefold())
            merged.append(cleaned)
    return merged


def _question_key(question: str) -> str:
    return re.sub(r"[\s?.!]+$", "", " ".join(question.split()).casefold())


def _dedupe_questions(questions: list[str]) -> list[str]:
    unique: list[str] = []
    seen: set[str] = set()
    for question in questions:
        key = _question_key(question)
        if key and key not in seen:
            seen.add(key)
            unique.append(question.strip())
    return unique
