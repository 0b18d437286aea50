"""
Pydantic Data Models (Schemas)

This module defines all data structures that flow through the pipeline.
Pydantic models give us validation of model output, serialization for the
JSON artifact, and field descriptions that double as structured-output
instructions for the LLM.

=============================================================================
MODEL HIERARCHY (in pipeline order):
=============================================================================

    TranscriptChunk            <- Chunker output (one per segment)
           │
           ▼
    ChunkExtraction            <- Extractor output (one per chunk)
           ├── decisions[]      ExtractedDecision      (quote required)
           ├── action_items[]   ExtractedActionItem    (quote required)
           └── deliverables[]   ExtractedDeliverable   (quote required)
           │
           ▼
    RefinedMeeting             <- Refiner output (one per transcript)
           ├── decisions[]      RefinedDecision    D1, D2, ...
           ├── action_items[]   RefinedActionItem  A1, A2, ...
           └── deliverables[]   RefinedDeliverable DEL1, DEL2, ...
           │
           ▼
    MeetingResources           <- Generator output
           ├── notes            MeetingNotes
           └── prd              PRDDocument (only when deliverables exist)
           │
           ▼
    FinalOutput                <- Editor output (notes + prd + renderings)

=============================================================================
"""

from typing import TYPE_CHECKING, Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from ..utils.formatters import FormatterOptions

Priority = Literal["high", "medium", "low"]
ItemStatus = Literal["open", "in_progress", "completed"]
MoSCoW = Literal["must", "should", "could", "wont"]

UNASSIGNED_OWNER = "TBD"


def _require_text(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("must not be blank")
    return value


# Every extracted fact cites a literal transcript excerpt
Quote = Annotated[str, AfterValidator(_require_text)]


# =============================================================================
# CHUNKING
# =============================================================================


class TranscriptChunk(BaseModel):
    """
    A bounded, offset-addressed slice of the normalized transcript.

    Offsets index into the NORMALIZED transcript text. Consecutive chunks are
    contiguous: chunks[i + 1].start_offset == chunks[i].end_offset.

    ``overlap_content`` is read-only lookahead shown to the model. It is NOT
    part of this chunk's offsets and is never processed as its own chunk.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="0-based position in the chunk sequence")
    content: str = Field(description="Primary text of this chunk")
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)
    speakers_present: list[str] = Field(default_factory=list)
    has_overlap: bool = False
    overlap_content: Optional[str] = None


class MeetingMetadata(BaseModel):
    """Lightweight facts scanned from the transcript without a model call."""

    title: Optional[str] = None
    date: Optional[str] = None
    attendees: list[str] = Field(default_factory=list)
    duration: Optional[str] = None
    source: str = "transcript"


# =============================================================================
# EXTRACTION (per chunk, no identifiers yet)
# =============================================================================


class ExtractedDecision(BaseModel):
    """Decision fragment found in one chunk."""

    decision: str = Field(description="What was decided")
    made_by: Optional[str] = Field(default=None, description="Who made or announced the decision")
    quote: Quote = Field(description="Verbatim supporting quote from the transcript")


class ExtractedActionItem(BaseModel):
    """Action item fragment found in one chunk."""

    task: str = Field(description="What needs to be done")
    owner: Optional[str] = Field(default=None, description="Who is responsible")
    deadline: Optional[str] = Field(default=None, description="When it is due")
    quote: Quote = Field(description="Verbatim supporting quote from the transcript")


class ExtractedDeliverable(BaseModel):
    """Deliverable (feature, product, output) fragment found in one chunk."""

    name: str = Field(description="Feature or deliverable name")
    description: str = Field(description="What it is")
    timeline: Optional[str] = Field(default=None, description="Rough timeline mentioned")
    quote: Quote = Field(description="Verbatim supporting quote from the transcript")


class ChunkExtraction(BaseModel):
    """
    Everything the model found in a single chunk.

    ``summary_for_next_chunk`` is the ONLY channel of continuity between
    chunks. The extractor rejects an empty summary when more chunks follow.
    """

    decisions: list[ExtractedDecision] = Field(
        default_factory=list,
        description="Decisions made in this section of the meeting",
    )
    action_items: list[ExtractedActionItem] = Field(
        default_factory=list,
        description="Action items assigned in this section",
    )
    deliverables: list[ExtractedDeliverable] = Field(
        default_factory=list,
        description="Features or deliverables discussed in this section",
    )
    key_points: list[str] = Field(
        default_factory=list,
        description="Important discussion points worth noting",
    )
    summary_for_next_chunk: str = Field(
        description="2-3 sentence summary of context to pass to the next section for continuity",
    )


# =============================================================================
# REFINEMENT (canonical record)
# =============================================================================


class RefinedDecision(BaseModel):
    id: str = Field(description="Identifier: D1, D2, ...")
    decision: str = Field(description="Clear statement of what was decided")
    made_by: Optional[str] = Field(default=None, description="Who made or announced the decision")
    rationale: Optional[str] = Field(default=None, description="Why this decision was made")
    quote: Quote = Field(description="Supporting quote from the transcript")


class RefinedActionItem(BaseModel):
    id: str = Field(description="Identifier: A1, A2, ...")
    task: str = Field(description="Clear description of what needs to be done")
    owner: Optional[str] = Field(default=None, description="Person responsible for this task")
    deadline: Optional[str] = Field(default=None, description="When this is due")
    priority: Optional[Priority] = Field(
        default=None, description="Priority level based on discussion context"
    )
    quote: Quote = Field(description="Supporting quote from the transcript")


class RefinedDeliverable(BaseModel):
    id: str = Field(description="Identifier: DEL1, DEL2, ...")
    name: str = Field(description="Name of the feature or deliverable")
    description: str = Field(description="What this deliverable is and does")
    timeline: Optional[str] = Field(default=None, description="Target timeline if mentioned")
    owner: Optional[str] = Field(default=None, description="Person or team responsible")
    quote: Quote = Field(description="Supporting quote from the transcript")


class RefinedMeeting(BaseModel):
    """
    The canonical, deduplicated meeting record.

    Single source of truth for document generation. Every entry is traceable
    to at least one extraction quote. Identifiers are 1-based and gap-free
    within each list (the refiner renumbers whatever the model returns).
    """

    decisions: list[RefinedDecision] = Field(
        default_factory=list, description="Consolidated and deduplicated decisions"
    )
    action_items: list[RefinedActionItem] = Field(
        default_factory=list, description="Consolidated and deduplicated action items"
    )
    deliverables: list[RefinedDeliverable] = Field(
        default_factory=list, description="Consolidated and deduplicated deliverables"
    )
    meeting_summary: str = Field(description="Executive summary of the meeting in 2-4 sentences")
    attendees: list[str] = Field(
        default_factory=list, description="Meeting participants identified from the transcript"
    )
    open_questions: list[str] = Field(
        default_factory=list, description="Unresolved questions that need follow-up"
    )


# =============================================================================
# MEETING NOTES
# =============================================================================


class Decision(BaseModel):
    """
    A decision as it appears in the published notes.

    EXAMPLE:
        Decision(
            id="D1",
            title="Use React for the frontend",
            description="Use React for the frontend",
            participants=["Sarah"],
        )
    """

    id: str
    title: str = Field(description="Clear, definitive decision statement")
    description: str
    rationale: Optional[str] = None
    participants: list[str] = Field(default_factory=list)
    related_action_items: list[str] = Field(default_factory=list)


class ActionItem(BaseModel):
    """
    A task in the published notes.

    OWNER:
        Never empty. Unresolved ownership is the literal "TBD".

    PRIORITY / STATUS:
        priority defaults to "medium", status to "open".
    """

    id: str
    owner: str = Field(default=UNASSIGNED_OWNER, description="Attendee name or TBD")
    task: str = Field(description="Clear, actionable task description")
    due_date: Optional[str] = None
    priority: Priority = "medium"
    status: ItemStatus = "open"
    context: Optional[str] = None

    @field_validator("owner", mode="before")
    @classmethod
    def _owner_or_tbd(cls, value: Optional[str]) -> str:
        if value is None or not str(value).strip():
            return UNASSIGNED_OWNER
        return str(value).strip()


class KeyDiscussionPoint(BaseModel):
    topic: str
    summary: str


class MeetingNotes(BaseModel):
    """User-facing meeting notes document."""

    title: str = Field(description="Meeting title")
    date: Optional[str] = Field(default=None, description="Meeting date if mentioned")
    attendees: list[str] = Field(default_factory=list)
    summary: str = Field(description="Executive summary, clear and actionable")
    decisions: list[Decision] = Field(default_factory=list)
    action_items: list[ActionItem] = Field(default_factory=list)
    key_discussion_points: list[KeyDiscussionPoint] = Field(default_factory=list)
    open_questions: list[str] = Field(default_factory=list, description="Open questions for follow-up")


# =============================================================================
# PRD
# =============================================================================


class PRDRequirement(BaseModel):
    id: str
    requirement: str = Field(description="Clear, testable requirement")
    priority: MoSCoW
    status: ItemStatus = "open"


class PRDTimeline(BaseModel):
    target: Optional[str] = None
    milestones: list[str] = Field(default_factory=list)


class PRDDocument(BaseModel):
    """Product requirements document; only produced when deliverables exist."""

    feature_name: str = Field(description="Clear feature name")
    overview: str = Field(description="Polished overview paragraph")
    requirements: list[PRDRequirement] = Field(default_factory=list)
    timeline: Optional[PRDTimeline] = None
    dependencies: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(default_factory=list)


class PRDDraftRequirement(BaseModel):
    id: str = Field(description="Requirement identifier (e.g., R1, R2)")
    description: str = Field(description="Clear description of the requirement")
    priority: Literal["must", "should", "could"] = Field(description="MoSCoW priority level")


class PRDDraft(BaseModel):
    """Shape the model fills in for PRD generation; converted to PRDDocument."""

    feature_name: str = Field(description="Name of the feature being specified")
    overview: str = Field(description="High-level description of the feature and its purpose")
    requirements: list[PRDDraftRequirement] = Field(
        default_factory=list, description="List of functional requirements"
    )
    timeline: Optional[str] = Field(default=None, description="Target delivery timeline")
    dependencies: list[str] = Field(
        default_factory=list, description="External dependencies or blockers"
    )
    open_questions: list[str] = Field(
        default_factory=list, description="Questions that need answers before implementation"
    )

    def to_document(self) -> PRDDocument:
        return PRDDocument(
            feature_name=self.feature_name,
            overview=self.overview,
            requirements=[
                PRDRequirement(id=r.id, requirement=r.description, priority=r.priority, status="open")
                for r in self.requirements
            ],
            timeline=PRDTimeline(target=self.timeline) if self.timeline else None,
            dependencies=list(self.dependencies),
            open_questions=list(self.open_questions),
        )


# =============================================================================
# EDITING / FINAL OUTPUT
# =============================================================================


class EditingResult(BaseModel):
    """Shape the model fills in during the editing pass."""

    notes: MeetingNotes = Field(description="Polished meeting notes")
    prd: Optional[PRDDocument] = Field(
        default=None, description="Polished PRD, only if a PRD was provided"
    )
    changes_applied: list[str] = Field(
        default_factory=list,
        description="List of specific changes made for consistency and clarity",
    )


class MeetingResources(BaseModel):
    notes: MeetingNotes
    prd: Optional[PRDDocument] = None


class FinalOutput(BaseModel):
    """
    Terminal artifact of the pipeline.

    ``markdown`` and ``json_text`` are derived renderings. Build instances
    with ``from_resources`` so they can always be regenerated from
    ``notes`` / ``prd``.
    """

    notes: MeetingNotes
    prd: Optional[PRDDocument] = None
    markdown: str
    json_text: str

    @classmethod
    def from_resources(
        cls,
        resources: MeetingResources,
        options: Optional["FormatterOptions"] = None,
    ) -> "FinalOutput":
        from ..utils.formatters import format_as_json, format_as_markdown

        return cls(
            notes=resources.notes,
            prd=resources.prd,
            markdown=format_as_markdown(resources, options),
            json_text=format_as_json(resources),
        )

    @property
    def resources(self) -> MeetingResources:
        return MeetingResources(notes=self.notes, prd=self.prd)


# =============================================================================
# RUN SUMMARY
# =============================================================================


class ProcessingStats(BaseModel):
    total_chunks: int
    refinement_passes: int = 1
    processing_time_ms: int
    decisions_found: int
    action_items_found: int
    deliverables_found: int
    prd_generated: bool
    changes_applied: list[str] = Field(default_factory=list)


class ProcessedMeeting(BaseModel):
    """What ``MeetingPipeline.process`` hands back to callers."""

    output: FinalOutput
    metadata: MeetingMetadata
    stats: ProcessingStats
