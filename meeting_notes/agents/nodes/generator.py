"""
Generator Node - Meeting Notes and PRD

Fourth stage of the pipeline.

    generate_meeting_notes(refined)  deterministic mapping, no model call
    generate_prd(refined)            one model request, ONLY when the meeting
                                     discussed at least one deliverable

Markdown for the pair is rendered locally through ``utils.formatters``.
"""

import logging
import time
from typing import Optional

from pydantic import BaseModel

from ...config import Settings, get_settings
from ...models import (
    ActionItem,
    Decision,
    MeetingMetadata,
    MeetingNotes,
    MeetingResources,
    PRDDocument,
    PRDDraft,
    RefinedMeeting,
)
from ...services import (
    LLMService,
    PipelineProgress,
    SilentProgress,
    StructuredModelClient,
    create_messages,
    revalidate,
)
from ...utils.formatters import format_as_markdown
from ...utils.helpers import truncate_text
from ..errors import ErrorContext, classify_error

logger = logging.getLogger(__name__)

PRD_TEMPERATURE = 0.2

DEFAULT_TITLE = "Meeting Notes"

# Decision text longer than this is shortened in the derived title
TITLE_DECISION_LENGTH = 50

PRD_GENERATION_SYSTEM_PROMPT = """You are a product manager creating a concise Product Requirements Document (PRD) from meeting discussion.

Your task is to transform deliverable information discussed in a meeting into a structured PRD.

REQUIREMENTS:
1. Feature Name: Clear, descriptive name for the feature/deliverable
2. Overview: 2-3 sentences explaining what this feature does and why it matters
3. Requirements: Break down into specific, actionable requirements using MoSCoW prioritization:
   - "must": Critical for launch
   - "should": Important but not blocking
   - "could": Nice to have
4. Timeline: Target delivery date/period if mentioned
5. Dependencies: External systems, teams, or blockers
6. Open Questions: Unresolved items that need answers before implementation

GUIDELINES:
- Be specific and actionable
- Don't invent requirements not discussed in the meeting
- Use the quotes provided to stay grounded in the actual discussion
- Keep it concise - this is a starting point, not a final document"""


class GeneratorResult(BaseModel):
    resources: MeetingResources
    markdown: str
    processing_time_ms: int
    prd_generated: bool


class MeetingGenerator:
    """
    Builds the user-facing documents from the canonical record.

    USAGE:
    ------
        generator = MeetingGenerator(llm_service=llm, settings=settings)
        result = await generator.generate(refined, generate_prd=True, metadata=metadata)
        result.resources.notes.title   # "Meeting Notes: Use React for the frontend"
        result.prd_generated           # False when no deliverables were discussed
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

    async def generate(
        self,
        refined: RefinedMeeting,
        generate_prd: bool = True,
        metadata: Optional[MeetingMetadata] = None,
    ) -> GeneratorResult:
        started = time.perf_counter()
        wants_prd = generate_prd and len(refined.deliverables) > 0

        self.progress.debug(
            f"Generating from {len(refined.decisions)} decisions, "
            f"{len(refined.action_items)} action items, {len(refined.deliverables)} deliverables"
        )
        self.progress.debug(f"Will generate PRD: {wants_prd}")

        notes = self.generate_meeting_notes(refined, metadata)
        prd = await self.generate_prd(refined) if wants_prd else None

        resources = MeetingResources(notes=notes, prd=prd)
        markdown = format_as_markdown(resources)
        processing_time_ms = round((time.perf_counter() - started) * 1000)

        logger.info(
            f"Generated meeting notes{' and PRD' if prd else ''} "
            f"({len(markdown)} characters of markdown)",
            extra={"stage": "generation", "latency_ms": processing_time_ms},
        )

        return GeneratorResult(
            resources=resources,
            markdown=markdown,
            processing_time_ms=processing_time_ms,
            prd_generated=prd is not None,
        )

    def generate_meeting_notes(
        self,
        refined: RefinedMeeting,
        metadata: Optional[MeetingMetadata] = None,
    ) -> MeetingNotes:
        return MeetingNotes(
            title=infer_meeting_title(refined),
            date=metadata.date if metadata else None,
            attendees=list(refined.attendees),
            summary=refined.meeting_summary,
            decisions=[
                Decision(
                    id=d.id,
                    title=d.decision,
                    description=d.rationale or d.decision,
                    rationale=d.rationale,
                    participants=[d.made_by] if d.made_by else [],
                )
                for d in refined.decisions
            ],
            action_items=[
                ActionItem(
                    id=a.id,
                    owner=a.owner,
                    task=a.task,
                    due_date=a.deadline,
                    priority=a.priority or "medium",
                    status="open",
                    context=a.quote,
                )
                for a in refined.action_items
            ],
            key_discussion_points=[],
            open_questions=list(refined.open_questions),
        )

    async def generate_prd(self, refined: RefinedMeeting) -> Optional[PRDDocument]:
        """One model request; returns None without calling the model if nothing was delivered."""
        if not refined.deliverables:
            self.progress.debug("No deliverables - skipping PRD generation")
            return None

        self.progress.debug(f"Generating PRD for {len(refined.deliverables)} deliverables")
        context = ErrorContext(
            model=self.llm.model_name,
            provider=self.llm.provider,
            timeout_ms=self.settings.ai_request_timeout_ms,
        )

        try:
            response = await self.llm.generate_structured(
                create_messages(build_prd_prompt(refined), PRD_GENERATION_SYSTEM_PROMPT),
                PRDDraft,
                temperature=PRD_TEMPERATURE,
                max_tokens=self.settings.generation_max_tokens,
                timeout_ms=self.settings.ai_request_timeout_ms,
            )
            draft = revalidate(response, PRDDraft)
        except Exception as exc:
            logger.error(f"PRD generation failed: {exc}", extra={"stage": "generation"})
            raise classify_error(exc, "generation", context) from exc

        self.progress.debug(f"Requirements generated: {len(draft.requirements)}")
        return draft.to_document()


def infer_meeting_title(refined: RefinedMeeting) -> str:
    if refined.deliverables:
        return f"{DEFAULT_TITLE}: {refined.deliverables[0].name}"

    if refined.decisions:
        decision = truncate_text(refined.decisions[0].decision, TITLE_DECISION_LENGTH)
        return f"{DEFAULT_TITLE}: {decision}"

    return DEFAULT_TITLE


def build_prd_prompt(refined: RefinedMeeting) -> str:
    parts = ["DELIVERABLES DISCUSSED IN MEETING:\n"]

    for d in refined.deliverables:
        parts.append(f"## {d.name}")
        parts.append(f"Description: {d.description}")
        if d.timeline:
            parts.append(f"Timeline: {d.timeline}")
        if d.owner:
            parts.append(f"Owner: {d.owner}")
        parts.append(f'Supporting quote: "{d.quote}"')
        parts.append("")

    if refined.decisions:
        parts.append("\nRELATED DECISIONS:")
        for d in refined.decisions:
            parts.append(f"- {d.decision}")
            if d.rationale:
                parts.append(f"  Rationale: {d.rationale}")

    if refined.action_items:
        parts.append("\nRELATED ACTION ITEMS:")
        for a in refined.action_items:
            parts.append(f"- {a.task}")
            if a.owner:
                parts.append(f"  Owner: {a.owner}")
            if a.deadline:
                parts.append(f"  Deadline: {a.deadline}")

    if refined.open_questions:
        parts.append("\nOPEN QUESTIONS FROM MEETING:")
        parts.extend(f"- {q}" for q in refined.open_questions)

    parts.append("\n---")
    parts.append(
        "Based on the above meeting discussion, create a focused PRD for the main deliverable(s). "
        "If multiple deliverables are related, combine them into a single coherent PRD. "
        "If they're unrelated, focus on the most significant one."
    )
    return "\n".join(parts)
