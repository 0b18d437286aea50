"""
Pipeline Error Taxonomy

Every failure that leaves a pipeline stage is a ``MeetingPipelineError``.
Instead of one subclass per failure category there is a single error type
tagged with an ``ErrorKind``; ``classify_error`` maps a raw exception from the
model client (or anywhere else) onto a kind plus remediation suggestions.

    try:
        result = await llm.generate_structured(...)
    except Exception as exc:
        raise classify_error(exc, "extraction", ctx) from exc

Callers render ``error.format_message()`` for a one-paragraph explanation
followed by a bulleted list of remedies.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

PipelineStageName = Literal["chunking", "extraction", "refinement", "generation", "editing"]

STAGE_NUMBERS: dict[str, int] = {
    "chunking": 1,
    "extraction": 2,
    "refinement": 3,
    "generation": 4,
    "editing": 5,
}

TOTAL_STAGES = 5


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    MODEL_COMPATIBILITY = "model_compatibility"
    TIMEOUT = "timeout"
    TRANSCRIPT = "transcript"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class ErrorContext:
    """Where in the run the failure happened. Chunk index is 1-based."""

    chunk_index: Optional[int] = None
    total_chunks: Optional[int] = None
    model: Optional[str] = None
    provider: Optional[str] = None
    timeout_ms: Optional[int] = None


CONFIGURATION_SUGGESTIONS = [
    "Set the OPENAI_API_KEY environment variable",
    "Add OPENAI_API_KEY=<your-key> to the .env file",
]

MODEL_COMPATIBILITY_SUGGESTIONS = [
    "Switch to a model that supports the token limit parameter, e.g. OPENAI_MODEL=gpt-4o",
    "Use a smaller/faster model such as OPENAI_MODEL=gpt-4o-mini",
]

TIMEOUT_SUGGESTIONS = [
    "Use a faster model (OPENAI_MODEL=gpt-4o-mini)",
    "Split the transcript into smaller files",
    "Set AI_REQUEST_TIMEOUT_MS to a higher value",
]

TRANSCRIPT_SUGGESTIONS = [
    "Check the transcript source is correct",
    "Ensure the transcript is plain text (not binary)",
    "Verify the transcript has meaningful content",
]

RATE_LIMIT_SUGGESTIONS = [
    "Wait a few minutes and try again",
    "Use a lower-tier model (OPENAI_MODEL=gpt-4o-mini)",
]


class MeetingPipelineError(Exception):
    """
    A classified pipeline failure.

    Attributes:
        kind: Failure category (see ErrorKind)
        stage: Pipeline stage that failed
        context: Chunk position, model and provider when known
        suggestions: Remedies shown to the user
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        stage: PipelineStageName,
        context: Optional[ErrorContext] = None,
        suggestions: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.stage = stage
        self.context = context or ErrorContext()
        self.suggestions = list(suggestions or [])

    @property
    def stage_number(self) -> int:
        return STAGE_NUMBERS[self.stage]

    def format_message(self) -> str:
        """Header with stage/chunk position, the message, then remedies."""
        position = f"Stage {self.stage_number}/{TOTAL_STAGES}"
        if self.context.chunk_index is not None:
            total = self.context.total_chunks if self.context.total_chunks is not None else "?"
            position += f", chunk {self.context.chunk_index}/{total}"

        lines = [f"{self.stage.capitalize()} failed ({position})", "", f"Error: {self.message}"]
        if self.suggestions:
            lines.extend(["", "Try one of these:"])
            lines.extend(f"  - {s}" for s in self.suggestions)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"MeetingPipelineError(kind={self.kind.value!r}, stage={self.stage!r}, "
            f"message={self.message!r})"
        )


def transcript_error(message: str) -> MeetingPipelineError:
    return MeetingPipelineError(
        message,
        ErrorKind.TRANSCRIPT,
        "chunking",
        suggestions=TRANSCRIPT_SUGGESTIONS,
    )


def classify_error(
    error: BaseException,
    stage: PipelineStageName,
    context: Optional[ErrorContext] = None,
) -> MeetingPipelineError:
    """
    Map any exception onto a MeetingPipelineError.

    Pure: no I/O, no logging. Already-classified errors are returned as-is so
    that re-wrapping at an outer stage never loses the original stage.
    The caller chains the cause with ``raise ... from error``.
    """
    if isinstance(error, MeetingPipelineError):
        return error

    context = context or ErrorContext()
    message = str(error) or type(error).__name__
    type_name = type(error).__name__
    lowered = message.lower()

    if "max_tokens" in message or "max_completion_tokens" in message:
        model = context.model or "unknown"
        provider = context.provider or "unknown"
        return MeetingPipelineError(
            f"Model '{model}' ({provider}) does not support the 'max_tokens' parameter",
            ErrorKind.MODEL_COMPATIBILITY,
            stage,
            context,
            MODEL_COMPATIBILITY_SUGGESTIONS,
        )

    if (
        "API key" in message
        or "Unauthorized" in message
        or "401" in message
        or type_name == "AuthenticationError"
    ):
        provider = context.provider or "openai"
        label = "OpenAI" if provider == "openai" else provider
        return MeetingPipelineError(
            f"{label} API key not configured or rejected: {message}",
            ErrorKind.CONFIGURATION,
            stage,
            context,
            CONFIGURATION_SUGGESTIONS,
        )

    if (
        isinstance(error, (TimeoutError, asyncio.TimeoutError))
        or type_name.endswith("TimeoutError")
        or "timeout" in lowered
        or "timed out" in lowered
        or "aborted" in lowered
    ):
        if context.timeout_ms:
            text = f"Request timed out after {round(context.timeout_ms / 1000)}s"
        else:
            text = "Request timed out"
        return MeetingPipelineError(text, ErrorKind.TIMEOUT, stage, context, TIMEOUT_SUGGESTIONS)

    suggestions = []
    if "rate limit" in lowered or "429" in message or type_name == "RateLimitError":
        suggestions = RATE_LIMIT_SUGGESTIONS

    return MeetingPipelineError(message, ErrorKind.UNCLASSIFIED, stage, context, suggestions)


def format_error(error: BaseException) -> str:
    """Render any error for display; pipeline errors get the full layout."""
    if isinstance(error, MeetingPipelineError):
        return error.format_message()
    return f"Error processing meeting: {error}"
