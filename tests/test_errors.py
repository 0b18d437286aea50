"""Unit tests for error classification and rendering."""

from __future__ import annotations

import asyncio

import pytest

from meeting_notes.agents.errors import (
    RATE_LIMIT_SUGGESTIONS,
    ErrorContext,
    ErrorKind,
    MeetingPipelineError,
    classify_error,
    format_error,
    transcript_error,
)


class RateLimitError(Exception):
    pass


class AuthenticationError(Exception):
    pass


class APITimeoutError(Exception):
    pass


CONTEXT = ErrorContext(
    chunk_index=2, total_chunks=5, model="gpt-4o", provider="openai", timeout_ms=120_000
)


# ── Classification ───────────────────────────────────────────────────────────


class TestClassifyError:
    """Raw exceptions map onto exactly one ErrorKind."""

    def test_max_tokens_is_model_compatibility(self):
        error = classify_error(
            ValueError("Unsupported parameter: 'max_tokens' is not supported with this model"),
            "extraction",
            CONTEXT,
        )
        assert error.kind is ErrorKind.MODEL_COMPATIBILITY
        assert error.message == "Model 'gpt-4o' (openai) does not support the 'max_tokens' parameter"
        assert error.suggestions

    @pytest.mark.parametrize(
        "exc",
        [
            ValueError("OpenAI API key is required"),
            RuntimeError("Error code: 401"),
            RuntimeError("Unauthorized"),
            AuthenticationError("bad credentials"),
        ],
    )
    def test_credentials_are_configuration(self, exc):
        error = classify_error(exc, "refinement", CONTEXT)
        assert error.kind is ErrorKind.CONFIGURATION
        assert error.message.startswith("OpenAI API key not configured or rejected")

    @pytest.mark.parametrize(
        "exc",
        [
            TimeoutError(),
            asyncio.TimeoutError(),
            APITimeoutError("boom"),
            RuntimeError("Request Timeout"),
            RuntimeError("connection timed out"),
            RuntimeError("The operation was aborted"),
        ],
    )
    def test_timeouts(self, exc):
        error = classify_error(exc, "extraction", CONTEXT)
        assert error.kind is ErrorKind.TIMEOUT
        assert error.message == "Request timed out after 120s"

    def test_timeout_without_configured_budget(self):
        error = classify_error(TimeoutError(), "editing")
        assert error.message == "Request timed out"

    def test_other_errors_keep_message(self):
        error = classify_error(RuntimeError("something odd"), "generation", CONTEXT)
        assert error.kind is ErrorKind.UNCLASSIFIED
        assert error.message == "something odd"
        assert error.suggestions == []

    @pytest.mark.parametrize(
        "exc",
        [RuntimeError("Rate limit reached"), RuntimeError("Error code: 429"), RateLimitError("slow")],
    )
    def test_rate_limit_adds_suggestions(self, exc):
        error = classify_error(exc, "extraction")
        assert error.kind is ErrorKind.UNCLASSIFIED
        assert error.suggestions == RATE_LIMIT_SUGGESTIONS

    def test_pipeline_errors_pass_through(self):
        original = transcript_error("Transcript is empty")
        assert classify_error(original, "editing") is original

    def test_context_attached(self):
        error = classify_error(RuntimeError("x"), "extraction", CONTEXT)
        assert error.stage == "extraction"
        assert error.context is CONTEXT


# ── Rendering ────────────────────────────────────────────────────────────────


class TestFormatMessage:
    def test_layout_with_chunk_and_suggestions(self):
        error = MeetingPipelineError(
            "Request timed out after 120s",
            ErrorKind.TIMEOUT,
            "extraction",
            ErrorContext(chunk_index=3, total_chunks=7),
            ["Use a faster model", "Set a higher timeout"],
        )

        assert error.format_message() == (
            "Extraction failed (Stage 2/5, chunk 3/7)\n"
            "\n"
            "Error: Request timed out after 120s\n"
            "\n"
            "Try one of these:\n"
            "  - Use a faster model\n"
            "  - Set a higher timeout"
        )

    def test_layout_without_chunk_or_suggestions(self):
        error = MeetingPipelineError("boom", ErrorKind.UNCLASSIFIED, "editing")
        assert error.format_message() == "Editing failed (Stage 5/5)\n\nError: boom"

    def test_transcript_error_is_stage_one(self):
        error = transcript_error("Transcript is empty")
        assert error.stage_number == 1
        assert error.kind is ErrorKind.TRANSCRIPT
        assert error.suggestions

    def test_format_error(self):
        assert format_error(ValueError("bad")) == "Error processing meeting: bad"
        error = transcript_error("Transcript is empty")
        assert format_error(error) == error.format_message()

    def test_str_is_message(self):
        assert str(transcript_error("Transcript is empty")) == "Transcript is empty"
