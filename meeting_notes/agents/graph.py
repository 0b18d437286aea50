"""
LangGraph Pipeline Orchestration - Main Graph Definition

This is the CORE of the meeting-notes system. It wires the five stages into
a LangGraph pipeline that turns a raw transcript into finished documents.

=============================================================================
ARCHITECTURE OVERVIEW:
=============================================================================

The graph follows a LINEAR pipeline pattern:

    START
      │
      ▼
  ┌────────────┐   Validates and splits the transcript, scans metadata
  │  Chunking  │   Input: transcript
  │    [1/5]   │   Output: chunks, metadata                (no model call)
  └─────┬──────┘
        ▼
  ┌────────────┐   One request per chunk, strictly in order
  │ Extraction │   Input: chunks
  │    [2/5]   │   Output: extraction_result
  └─────┬──────┘
        ▼
  ┌────────────┐   Merges fragments into the canonical record
  │ Refinement │   Input: extraction_result, metadata
  │    [3/5]   │   Output: refinement_result
  └─────┬──────┘
        ▼
  ┌────────────┐   Notes (local) + PRD (one request, only with deliverables)
  │ Generation │   Input: refinement_result, metadata
  │    [4/5]   │   Output: generation_result
  └─────┬──────┘
        ▼
  ┌────────────┐   Consistency pass, then Markdown/JSON rendering
  │  Editing   │   Input: generation_result
  │    [5/5]   │   Output: editing_result
  └─────┬──────┘
        ▼
       END

=============================================================================
KEY CONCEPTS:
=============================================================================

1. NODES ARE BOUND METHODS:
   - Each node is a method of MeetingPipeline, so it can reach the injected
     LLM client, settings and progress reporter
   - Nodes receive PipelineState and return a partial update

2. FAILURE STOPS THE RUN:
   - A node raises MeetingPipelineError; LangGraph propagates it out of
     ainvoke(), the reporter's fail() is called, and the error reaches the
     caller with its stage attached. There is no partial output.

3. PROGRESS:
   - Each node sets the reporter's stage before doing any work

=============================================================================
USAGE EXAMPLE:
=============================================================================

    from meeting_notes import process_meeting

    processed = await process_meeting(transcript)
    print(processed.output.markdown)
    print(processed.stats.decisions_found)

=============================================================================
"""

import logging
import time
from typing import Optional

from langgraph.graph import END, StateGraph

from ..config import Settings, get_settings
from ..models import FinalOutput, ProcessedMeeting, ProcessingStats
from ..services import (
    LLMService,
    PipelineProgress,
    PipelineStage,
    StructuredModelClient,
    create_progress,
    get_llm_service,
)
from ..utils.helpers import format_count, format_duration
from .errors import STAGE_NUMBERS, TOTAL_STAGES, MeetingPipelineError, PipelineStageName, classify_error
from .nodes import (
    MeetingEditor,
    MeetingExtractor,
    MeetingGenerator,
    MeetingRefiner,
    TranscriptChunker,
    validate_transcript,
)
from .state import PipelineState

logger = logging.getLogger(__name__)


class MeetingPipeline:
    """
    High-level interface for turning a transcript into meeting documents.

    This class owns one instance of every stage and a compiled LangGraph.
    Dependencies are chosen once, here, and shared by all stages.

    USAGE:
    ------
        pipeline = MeetingPipeline()
        processed = await pipeline.process("[00:00] Sarah: Let's get started...")

        # Tests and embedding applications inject their own collaborators:
        pipeline = MeetingPipeline(settings=settings, llm_service=fake, progress=SilentProgress())

    ATTRIBUTES:
    -----------
        graph: The compiled LangGraph workflow
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_service: Optional[StructuredModelClient] = None,
        progress: Optional[PipelineProgress] = None,
    ) -> None:
        self.settings = settings or get_settings()

        if llm_service is None:
            llm_service = get_llm_service() if settings is None else LLMService(self.settings)
        self.llm = llm_service

        self.progress = progress or create_progress(
            verbose=self.settings.verbose,
            silent=self.settings.silent,
        )

        self.chunker = TranscriptChunker.from_settings(self.settings)
        self.extractor = MeetingExtractor(self.llm, self.settings, self.progress)
        self.refiner = MeetingRefiner(self.llm, self.settings, self.progress)
        self.generator = MeetingGenerator(self.llm, self.settings, self.progress)
        self.editor = MeetingEditor(self.llm, self.settings, self.progress)

        logger.info(f"Initializing MeetingPipeline with model: {self.llm.model_name}")
        self.graph = self._build_graph()

    def _build_graph(self):
        """
        Build and compile the five-node linear graph.

        Compiled once per pipeline and reused for every process() call.
        """
        workflow = StateGraph(PipelineState)

        workflow.add_node("chunking", self._chunking_node)
        workflow.add_node("extraction", self._extraction_node)
        workflow.add_node("refinement", self._refinement_node)
        workflow.add_node("generation", self._generation_node)
        workflow.add_node("editing", self._editing_node)

        workflow.set_entry_point("chunking")
        workflow.add_edge("chunking", "extraction")
        workflow.add_edge("extraction", "refinement")
        workflow.add_edge("refinement", "generation")
        workflow.add_edge("generation", "editing")
        workflow.add_edge("editing", END)

        return workflow.compile()

    # =========================================================================
    # Public API
    # =========================================================================

    async def process(self, transcript: str) -> ProcessedMeeting:
        """
        Run the full pipeline on one transcript.

        Args:
            transcript: Raw transcript text, typically "[mm:ss] Speaker: text" lines

        Returns:
            ProcessedMeeting with the final documents, scanned metadata and run stats

        Raises:
            MeetingPipelineError: classified failure with the failing stage attached
        """
        started = time.perf_counter()
        logger.info(f"Processing transcript ({len(transcript)} characters)")

        try:
            final_state: PipelineState = await self.graph.ainvoke({"transcript": transcript})
        except MeetingPipelineError as exc:
            self._report_failure(exc)
            raise
        except Exception as exc:
            error = classify_error(exc, self._current_stage_name())
            self._report_failure(error)
            raise error from exc

        processing_time_ms = round((time.perf_counter() - started) * 1000)
        output: FinalOutput = final_state["editing_result"].output

        stats = ProcessingStats(
            total_chunks=len(final_state["chunks"]),
            refinement_passes=1,
            processing_time_ms=processing_time_ms,
            decisions_found=len(output.notes.decisions),
            action_items_found=len(output.notes.action_items),
            deliverables_found=len(final_state["refinement_result"].refined.deliverables),
            prd_generated=output.prd is not None,
            changes_applied=final_state["editing_result"].changes_applied,
        )

        logger.info(
            f"Meeting processed in {format_duration(processing_time_ms)}: "
            f"{format_count(stats.decisions_found, 'decision')}, "
            f"{format_count(stats.action_items_found, 'action item')}",
            extra={"latency_ms": processing_time_ms},
        )

        return ProcessedMeeting(output=output, metadata=final_state["metadata"], stats=stats)

    # =========================================================================
    # Nodes
    # =========================================================================

    async def _chunking_node(self, state: PipelineState) -> dict:
        self._enter_stage("chunking", "Analyzing transcript")

        transcript = state["transcript"]
        char_count = validate_transcript(transcript)
        chunks = self.chunker.chunk(transcript)
        metadata = self.chunker.extract_metadata(transcript)

        self.progress.debug(f"Speakers found: {', '.join(metadata.attendees) or 'none'}")
        self.progress.succeed(
            f"Transcript: {format_count(char_count, 'character')}, "
            f"{format_count(len(chunks), 'chunk')}"
        )
        return {"chunks": chunks, "metadata": metadata}

    async def _extraction_node(self, state: PipelineState) -> dict:
        chunks = state["chunks"]
        self._enter_stage("extraction", f"Extracting from {format_count(len(chunks), 'chunk')}")

        result = await self.extractor.extract_from_chunks(chunks)

        self.progress.succeed(
            f"Extracted {format_count(result.total_chunks, 'chunk')} "
            f"in {format_duration(result.processing_time_ms)}"
        )
        return {"extraction_result": result}

    async def _refinement_node(self, state: PipelineState) -> dict:
        self._enter_stage("refinement", "Consolidating and deduplicating")

        result = await self.refiner.refine(
            state["extraction_result"].extractions,
            known_attendees=state["metadata"].attendees,
        )

        refined = result.refined
        self.progress.succeed(
            f"Refined: {format_count(len(refined.decisions), 'decision')}, "
            f"{format_count(len(refined.action_items), 'action item')}, "
            f"{format_count(len(refined.deliverables), 'deliverable')}"
        )
        return {"refinement_result": result}

    async def _generation_node(self, state: PipelineState) -> dict:
        self._enter_stage("generation", "Generating meeting notes")

        result = await self.generator.generate(
            state["refinement_result"].refined,
            generate_prd=self.settings.generate_prd,
            metadata=state["metadata"],
        )

        self.progress.succeed(
            "Generated meeting notes and PRD" if result.prd_generated else "Generated meeting notes"
        )
        return {"generation_result": result}

    async def _editing_node(self, state: PipelineState) -> dict:
        self._enter_stage("editing", "Polishing documents")

        result = await self.editor.edit(state["generation_result"].resources)

        self.progress.succeed(
            f"Edited: {format_count(len(result.changes_applied), 'change')} applied"
        )
        return {"editing_result": result}

    # =========================================================================
    # Helpers
    # =========================================================================

    def _enter_stage(self, name: PipelineStageName, message: str) -> None:
        stage = PipelineStage(name=name, number=STAGE_NUMBERS[name], total_stages=TOTAL_STAGES)
        self.progress.set_stage(stage)
        self.progress.start(f"{stage.label}: {message}")
        logger.info(f"Entering stage {stage.number}/{stage.total_stages}: {name}", extra={"stage": name})

    def _current_stage_name(self) -> PipelineStageName:
        stage = self.progress.get_current_stage()
        return stage.name if stage else "chunking"  # type: ignore[return-value]

    def _report_failure(self, error: MeetingPipelineError) -> None:
        self.progress.fail(f"{error.stage.capitalize()} failed: {error.message}")
        logger.error(
            f"Pipeline failed at {error.stage} ({error.kind.value}): {error.message}",
            extra={"stage": error.stage, "chunk": error.context.chunk_index},
        )


async def process_meeting(
    transcript: str,
    settings: Optional[Settings] = None,
    llm_service: Optional[StructuredModelClient] = None,
    progress: Optional[PipelineProgress] = None,
) -> ProcessedMeeting:
    """
    Process one transcript with a freshly built pipeline.

    Example:
        processed = await process_meeting(open("standup.txt").read())
        print(processed.output.markdown)
    """
    pipeline = MeetingPipeline(settings=settings, llm_service=llm_service, progress=progress)
    return await pipeline.process(transcript)
