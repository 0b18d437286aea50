"""
Output Formatters

Deterministic rendering of meeting notes and PRDs. The generator and editor
both render through these functions; nothing here calls a model.

    format_as_markdown(resources)  -> human document (notes, then PRD)
    format_as_json(resources)      -> {"notes": {...}, "prd": {...} | null}
"""

import json
from dataclasses import dataclass
from typing import Literal, Optional

from ..models.schemas import (
    ActionItem,
    Decision,
    MeetingNotes,
    MeetingResources,
    PRDDocument,
)

OutputFormat = Literal["markdown", "json"]

PRD_DIVIDER = "\n---\n"


@dataclass(frozen=True)
class FormatterOptions:
    include_rationale: bool = True
    compact_tables: bool = False


_DEFAULT_OPTIONS = FormatterOptions()


def format_as_markdown(
    resources: MeetingResources,
    options: Optional[FormatterOptions] = None,
) -> str:
    """Render notes and, when present, the PRD after a horizontal rule."""
    options = options or _DEFAULT_OPTIONS
    sections = [format_notes_as_markdown(resources.notes, options)]
    if resources.prd is not None:
        sections.append(PRD_DIVIDER)
        sections.append(format_prd_as_markdown(resources.prd, options))
    return "\n".join(sections)


def format_as_json(resources: MeetingResources, indent: int = 2) -> str:
    payload = {
        "notes": resources.notes.model_dump(mode="json"),
        "prd": resources.prd.model_dump(mode="json") if resources.prd else None,
    }
    return json.dumps(payload, indent=indent, ensure_ascii=False)


def format_output(
    resources: MeetingResources,
    fmt: OutputFormat,
    options: Optional[FormatterOptions] = None,
) -> str:
    if fmt == "markdown":
        return format_as_markdown(resources, options)
    if fmt == "json":
        return format_as_json(resources)
    raise ValueError(f"Unsupported output format: {fmt}")


# =============================================================================
# MEETING NOTES
# =============================================================================


def format_notes_as_markdown(
    notes: MeetingNotes,
    options: Optional[FormatterOptions] = None,
) -> str:
    options = options or _DEFAULT_OPTIONS

    lines = [f"# {notes.title}", ""]
    if notes.date:
        lines.append(f"**Date:** {notes.date}")
    if notes.attendees:
        lines.append(f"**Attendees:** {', '.join(notes.attendees)}")

    lines.extend(["", "## Summary", "", notes.summary])

    if notes.decisions:
        lines.extend(["", "## Decisions", ""])
        lines.append(_decision_lines(notes.decisions, options.include_rationale))

    if notes.action_items:
        lines.extend(["", "## Action Items", ""])
        lines.append(_action_items_table(notes.action_items, options.compact_tables))

    if notes.key_discussion_points:
        lines.extend(["", "## Key Discussion Points", ""])
        for point in notes.key_discussion_points:
            lines.extend([f"### {point.topic}", "", point.summary, ""])

    if notes.open_questions:
        lines.extend(["", "## Open Questions", ""])
        lines.append(format_open_questions_list(notes.open_questions))

    return "\n".join(lines)


def format_decisions_list(decisions: list[Decision]) -> str:
    return _decision_lines(decisions, include_rationale=True)


def format_open_questions_list(questions: list[str]) -> str:
    return "\n".join(f"- [ ] {q}" for q in questions)


def _decision_lines(decisions: list[Decision], include_rationale: bool) -> str:
    lines = []
    for number, decision in enumerate(decisions, start=1):
        lines.append(f"{number}. **{decision.title}**")
        if include_rationale and decision.rationale and decision.rationale != decision.title:
            lines.append(f"   > {decision.rationale}")
        if decision.participants:
            lines.append(f"   - *Decision by: {', '.join(decision.participants)}*")
    return "\n".join(lines)


def _action_items_table(items: list[ActionItem], compact: bool) -> str:
    if compact:
        lines = ["| Owner | Task | Due |", "|-------|------|-----|"]
        for item in items:
            lines.append(
                f"| {escape_table_cell(item.owner)} | {escape_table_cell(item.task)} "
                f"| {escape_table_cell(item.due_date or '-')} |"
            )
        return "\n".join(lines)

    lines = ["| Owner | Task | Due | Priority |", "|-------|------|-----|----------|"]
    for item in items:
        lines.append(
            f"| {escape_table_cell(item.owner)} | {escape_table_cell(item.task)} "
            f"| {escape_table_cell(item.due_date or '-')} | {item.priority} |"
        )
    return "\n".join(lines)


# =============================================================================
# PRD
# =============================================================================


def format_prd_as_markdown(
    prd: PRDDocument,
    options: Optional[FormatterOptions] = None,
) -> str:
    options = options or _DEFAULT_OPTIONS

    lines = [f"# Product Requirements: {prd.feature_name}", "", "## Overview", "", prd.overview]

    if prd.requirements:
        lines.extend(["", "## Requirements", ""])
        lines.append(_requirements_table(prd, options.compact_tables))

    if prd.timeline and prd.timeline.target:
        lines.extend(["", "## Timeline", "", f"**Target:** {prd.timeline.target}"])
        if prd.timeline.milestones:
            lines.extend(["", "**Milestones:**"])
            lines.extend(f"- {m}" for m in prd.timeline.milestones)

    if prd.dependencies:
        lines.extend(["", "## Dependencies", ""])
        lines.extend(f"- {d}" for d in prd.dependencies)

    if prd.open_questions:
        lines.extend(["", "## Open Questions", ""])
        lines.extend(f"- {q}" for q in prd.open_questions)

    return "\n".join(lines)


def _requirements_table(prd: PRDDocument, compact: bool) -> str:
    if compact:
        lines = ["| ID | Requirement |", "|----|-------------|"]
        for req in prd.requirements:
            lines.append(f"| {req.id} | {escape_table_cell(req.requirement)} |")
        return "\n".join(lines)

    lines = ["| ID | Requirement | Priority |", "|----|-------------|----------|"]
    for req in prd.requirements:
        lines.append(
            f"| {req.id} | {escape_table_cell(req.requirement)} | {req.priority.capitalize()} |"
        )
    return "\n".join(lines)


def escape_table_cell(value: str) -> str:
    # Pipes end the cell and newlines end the row
    return value.replace("|", "\\|").replace("\r\n", " ").replace("\n", " ")
