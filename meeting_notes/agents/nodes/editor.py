"""
Editor Node - Final Consistency Pass

Last stage of the pipeline. One model request polishes the notes and the
PRD together (attendee spelling, owners, redundancy, actionable wording).

The model's answer is not trusted blindly. After the request:

    - decisions / action items whose ids were not in the input are dropped
    - a PRD is discarded if none was sent, and kept if the model lost it
    - blank owners become "TBD"
    - Markdown and JSON are rendered locally from the edited documents
"""

import json
import logging
import time
from typing import Optional, TypeVar, Union

from pydantic import BaseModel

from ...config import Settings, get_settings
from ...models import (
    ActionItem,
    Decision,
    EditingResult,
    FinalOutput,
    MeetingNotes,
    MeetingResources,
    PRDDocument,
)
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

T = TypeVar("T", bound=Union[Decision, ActionItem])

EDITING_TEMPERATURE = 0.1

EDITING_SYSTEM_PROMPT = """You are an expert editor specializing in meeting documentation. Your task is to perform a final polish pass on meeting notes and (if present) a PRD document.

CRITICAL REQUIREMENTS:

1. CONSISTENCY CHECK:
   - Ensure attendee names are consistently formatted (e.g., don't mix "John" and "John Smith")
   - Verify action item owners match people in the attendees list, or are "TBD"
   - Check that deliverables mentioned in notes align with the PRD (if present)
   - Ensure dates and timelines are consistent between notes and PRD

2. REDUNDANCY REMOVAL:
   - Remove duplicate information between sections
   - Avoid repeating the same point in summary and decisions

3. ACTIONABILITY:
   - Ensure action items have clear, specific tasks (not vague like "look into X")
   - Make sure open questions are actually questions, not statements

4. CLARITY:
   - Rewrite unclear sentences
   - Use consistent terminology throughout
   - Ensure decision statements are definitive

5. CROSS-DOCUMENT ALIGNMENT (when a PRD is present):
   - PRD feature name should align with the meeting discussion
   - Requirements in the PRD should reflect decisions from the meeting
   - Open questions should not be duplicated between notes and PRD

DO NOT:
- Invent new information, decisions or action items
- Change or invent ids
- Remove valid content
- Change the fundamental meaning of decisions or action items
- Add a PRD if none was provided

Record every change you make in changes_applied."""


class EditorResult(BaseModel):
    output: FinalOutput
    processing_time_ms: int
    changes_applied: list[str]


class MeetingEditor:
    """
    Final polish over notes + PRD, then rendering.

    USAGE:
    ------
        editor = MeetingEditor(llm_service=llm, settings=settings)
        result = await editor.edit(generator_result.resources)
        print(result.output.markdown)
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

    async def edit(self, resources: MeetingResources) -> EditorResult:
        started = time.perf_counter()
        notes = resources.notes

        self.progress.debug(f"Notes title: {notes.title}")
        self.progress.debug(
            f"Decisions: {len(notes.decisions)}, action items: {len(notes.action_items)}, "
            f"PRD present: {resources.prd is not None}"
        )

        context = ErrorContext(
            model=self.llm.model_name,
            provider=self.llm.provider,
            timeout_ms=self.settings.ai_request_timeout_ms,
        )

        try:
            response = await self.llm.generate_structured(
                create_messages(build_editing_prompt(resources), EDITING_SYSTEM_PROMPT),
                EditingResult,
                temperature=EDITING_TEMPERATURE,
                max_tokens=self.settings.editing_max_tokens,
                timeout_ms=self.settings.ai_request_timeout_ms,
            )
            edited = revalidate(response, EditingResult)
        except Exception as exc:
            logger.error(f"Editing failed: {exc}", extra={"stage": "editing"})
            raise classify_error(exc, "editing", context) from exc

        final = apply_editing_guards(resources, edited)
        output = FinalOutput.from_resources(final)
        processing_time_ms = round((time.perf_counter() - started) * 1000)

        for change in edited.changes_applied:
            self.progress.debug(f"  - {change}")
        logger.info(
            f"Editing pass applied {len(edited.changes_applied)} changes",
            extra={"stage": "editing", "latency_ms": processing_time_ms},
        )

        return EditorResult(
            output=output,
            processing_time_ms=processing_time_ms,
            changes_applied=list(edited.changes_applied),
        )


def build_editing_prompt(resources: MeetingResources) -> str:
    parts = [
        "MEETING NOTES TO EDIT:\n",
        "```json",
        json.dumps(resources.notes.model_dump(mode="json"), indent=2, ensure_ascii=False),
        "```\n",
    ]

    if resources.prd is not None:
        parts.extend(
            [
                "PRD DOCUMENT TO EDIT:\n",
                "```json",
                json.dumps(resources.prd.model_dump(mode="json"), indent=2, ensure_ascii=False),
                "```\n",
            ]
        )
    else:
        parts.append("No PRD was provided. Leave prd empty.\n")

    parts.append("---")
    parts.append(
        "Please review and polish the above documents for consistency, clarity, and "
        "actionability. Ensure alignment between the meeting notes and PRD (if present). "
        "Track all changes you make."
    )
    return "\n".join(parts)


def apply_editing_guards(original: MeetingResources, edited: EditingResult) -> MeetingResources:
    """Keep the edit from adding facts the earlier stages never produced."""
    decision_ids = {d.id for d in original.notes.decisions}
    action_ids = {a.id for a in original.notes.action_items}

    decisions = _known_once(edited.notes.decisions, decision_ids)
    action_items = _known_once(edited.notes.action_items, action_ids)

    dropped = (len(edited.notes.decisions) - len(decisions)) + (
        len(edited.notes.action_items) - len(action_items)
    )
    if dropped:
        logger.warning(
            f"Editor returned {dropped} unknown or repeated items; dropped",
            extra={"stage": "editing"},
        )

    # Round-trip through validation so blank owners become TBD
    notes = MeetingNotes.model_validate(
        edited.notes.model_copy(update={"decisions": decisions, "action_items": action_items}).model_dump()
    )

    prd: Optional[PRDDocument] = None
    if original.prd is not None:
        prd = edited.prd or original.prd

    return MeetingResources(notes=notes, prd=prd)


def _known_once(items: list[T], known_ids: set[str]) -> list[T]:
    """First occurrence of each id that was in the input; repeats count as new items."""
    kept: list[T] = []
    seen: set[str] = set()
    for item in items:
        if item.id in known_ids and item.id not in seen:
            seen.add(item.id)
            kept.append(item)
    return kept
