"""Unit tests for MeetingGenerator: notes mapping, titles and PRD gating."""

from __future__ import annotations

import pytest

from meeting_notes.agents.errors import ErrorKind, MeetingPipelineError
from meeting_notes.agents.nodes.generator import (
    DEFAULT_TITLE,
    MeetingGenerator,
    build_prd_prompt,
    infer_meeting_title,
)
from meeting_notes.models import (
    MeetingMetadata,
    PRDDraft,
    PRDDraftRequirement,
    RefinedActionItem,
    RefinedDecision,
    RefinedDeliverable,
    RefinedMeeting,
)

from .conftest import FakeLLM


@pytest.fixture
def export_deliverable() -> RefinedDeliverable:
    return RefinedDeliverable(
        id="DEL1",
        name="CSV Export",
        description="Let users export reports as CSV",
        timeline="Q3",
        owner="Priya",
        quote="We need CSV export by Q3",
    )


@pytest.fixture
def export_draft() -> PRDDraft:
    return PRDDraft(
        feature_name="CSV Export",
        overview="Users can export any report as CSV.",
        requirements=[
            PRDDraftRequirement(id="R1", description="Export current report", priority="must"),
            PRDDraftRequirement(id="R2", description="Schedule exports", priority="could"),
        ],
        timeline="Q3",
        dependencies=["Reporting API"],
        open_questions=["Which delimiter?"],
    )


# ── Titles ───────────────────────────────────────────────────────────────────


class TestInferMeetingTitle:
    def test_first_deliverable_wins(self, react_refined, export_deliverable):
        refined = react_refined.model_copy(update={"deliverables": [export_deliverable]})
        assert infer_meeting_title(refined) == "Meeting Notes: CSV Export"

    def test_first_decision_when_no_deliverables(self, react_refined):
        assert infer_meeting_title(react_refined) == "Meeting Notes: Use React for the frontend"

    def test_long_decision_truncated(self):
        refined = RefinedMeeting(
            meeting_summary="s",
            decisions=[RefinedDecision(id="D1", decision="x" * 80, quote="q")],
        )
        title = infer_meeting_title(refined)
        assert title == f"Meeting Notes: {'x' * 47}..."

    def test_default_title(self):
        assert infer_meeting_title(RefinedMeeting(meeting_summary="s")) == DEFAULT_TITLE


# ── Meeting notes ────────────────────────────────────────────────────────────


class TestGenerateMeetingNotes:
    """The notes are a deterministic mapping of the refined record."""

    def test_maps_decisions_and_action_items(self, settings, react_refined):
        generator = MeetingGenerator(FakeLLM(), settings)
        notes = generator.generate_meeting_notes(
            react_refined, MeetingMetadata(date="2024-03-15")
        )

        assert notes.date == "2024-03-15"
        assert notes.attendees == ["Sarah", "Mike", "Priya"]
        decision = notes.decisions[0]
        assert (decision.id, decision.title) == ("D1", "Use React for the frontend")
        assert decision.rationale == "The team already knows React"
        assert decision.participants == ["Sarah"]
        action = notes.action_items[0]
        assert (action.id, action.owner, action.due_date) == ("A1", "Mike", "Friday")
        assert action.priority == "high"
        assert action.status == "open"
        assert notes.open_questions == ["Who will review the wireframes?"]

    def test_unowned_action_becomes_tbd_with_medium_priority(self, settings):
        refined = RefinedMeeting(
            meeting_summary="s",
            action_items=[RefinedActionItem(id="A1", task="Draft the plan", quote="someone draft it")],
        )

        notes = MeetingGenerator(FakeLLM(), settings).generate_meeting_notes(refined)

        assert notes.action_items[0].owner == "TBD"
        assert notes.action_items[0].priority == "medium"
        assert notes.date is None


# ── PRD gating ───────────────────────────────────────────────────────────────


class TestGenerate:
    """A PRD is requested only when deliverables exist and PRDs are enabled."""

    @pytest.mark.asyncio
    async def test_no_deliverables_no_request(self, settings, react_refined):
        llm = FakeLLM()
        result = await MeetingGenerator(llm, settings).generate(react_refined)

        assert llm.calls == []
        assert result.prd_generated is False
        assert result.resources.prd is None
        assert "# Meeting Notes: Use React for the frontend" in result.markdown

    @pytest.mark.asyncio
    async def test_prd_disabled_no_request(self, settings, react_refined, export_deliverable):
        refined = react_refined.model_copy(update={"deliverables": [export_deliverable]})
        llm = FakeLLM()

        result = await MeetingGenerator(llm, settings).generate(refined, generate_prd=False)

        assert llm.calls == []
        assert result.prd_generated is False

    @pytest.mark.asyncio
    async def test_prd_generated_from_draft(
        self, settings, react_refined, export_deliverable, export_draft
    ):
        refined = react_refined.model_copy(update={"deliverables": [export_deliverable]})
        llm = FakeLLM({PRDDraft: [export_draft]})

        result = await MeetingGenerator(llm, settings).generate(refined)

        assert len(llm.calls) == 1
        assert llm.calls[0].temperature == 0.2
        assert llm.calls[0].max_tokens == settings.generation_max_tokens
        prd = result.resources.prd
        assert result.prd_generated is True
        assert prd.feature_name == "CSV Export"
        assert [(r.id, r.requirement, r.priority, r.status) for r in prd.requirements] == [
            ("R1", "Export current report", "must", "open"),
            ("R2", "Schedule exports", "could", "open"),
        ]
        assert prd.timeline.target == "Q3"
        assert "# Product Requirements: CSV Export" in result.markdown
        assert result.resources.notes.title == "Meeting Notes: CSV Export"

    @pytest.mark.asyncio
    async def test_prd_failure_classified_as_generation(
        self, settings, react_refined, export_deliverable
    ):
        refined = react_refined.model_copy(update={"deliverables": [export_deliverable]})
        llm = FakeLLM({PRDDraft: [RuntimeError("Request timed out.")]})

        with pytest.raises(MeetingPipelineError) as exc_info:
            await MeetingGenerator(llm, settings).generate(refined)

        assert exc_info.value.stage == "generation"
        assert exc_info.value.kind is ErrorKind.TIMEOUT

    def test_prd_prompt_includes_context(self, react_refined, export_deliverable):
        refined = react_refined.model_copy(update={"deliverables": [export_deliverable]})
        prompt = build_prd_prompt(refined)

        assert "## CSV Export" in prompt
        assert 'Supporting quote: "We need CSV export by Q3"' in prompt
        assert "RELATED DECISIONS:" in prompt
        assert "OPEN QUESTIONS FROM MEETING:" in prompt
