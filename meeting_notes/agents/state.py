"""
LangGraph Pipeline State Definition

This module defines the state that flows through the five pipeline nodes.

=============================================================================
HOW STATE MOVES THROUGH THE GRAPH
=============================================================================

Each node receives the FULL state and returns a PARTIAL update; LangGraph
merges the update before calling the next node. Every value a node hands on
is a new object: no node mutates what an earlier node produced.

    {transcript}
        │  chunking     -> chunks, metadata
        ▼
        │  extraction   -> extraction_result
        ▼
        │  refinement   -> refinement_result
        ▼
        │  generation   -> generation_result
        ▼
        │  editing      -> editing_result
        ▼
       END

Output keys end in ``_result`` because LangGraph does not allow a node
and a state key to share a name.

There is no ``error`` field: a failing node raises a MeetingPipelineError
and the run stops there.

=============================================================================
"""

from typing import TypedDict

from ..models import MeetingMetadata, TranscriptChunk
from .nodes import EditorResult, ExtractionResult, GeneratorResult, RefinementResult


class PipelineState(TypedDict, total=False):
    """
    State for the meeting-notes LangGraph.

    TOTAL=FALSE:
    ------------
    Only ``transcript`` is present at invocation; each node adds its own
    fields.
    """

    # =========================================================================
    # Input
    # =========================================================================

    transcript: str
    """Raw transcript text as handed to MeetingPipeline.process()."""

    # =========================================================================
    # Chunking Node Output
    # =========================================================================

    chunks: list[TranscriptChunk]
    metadata: MeetingMetadata

    # =========================================================================
    # Model-backed Node Outputs
    # =========================================================================

    extraction_result: ExtractionResult
    refinement_result: RefinementResult
    generation_result: GeneratorResult
    editing_result: EditorResult
