"""Services: model requests and progress reporting."""

from .llm_service import (
    LLMService,
    StructuredModelClient,
    create_messages,
    get_llm_service,
    revalidate,
)
from .progress_service import (
    InteractiveProgress,
    PipelineProgress,
    PipelineStage,
    SilentProgress,
    VerboseProgress,
    create_progress,
)

__all__ = [
    "InteractiveProgress",
    "LLMService",
    "PipelineProgress",
    "PipelineStage",
    "SilentProgress",
    "StructuredModelClient",
    "VerboseProgress",
    "create_messages",
    "create_progress",
    "get_llm_service",
    "revalidate",
]
