"""
LLM Service for the Meeting Notes Pipeline

This service is the single model-request capability every pipeline stage
depends on: send system + user messages, get back an instance of a pydantic
schema, within a time budget.

Stages only rely on the ``StructuredModelClient`` protocol, so tests inject
a scripted fake and never touch the network.
"""

import logging
import time
from functools import lru_cache
from typing import Optional, Protocol, TypeVar

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from ..config import Settings, get_settings
from ..utils.helpers import run_with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class StructuredModelClient(Protocol):
    """What a pipeline stage needs from a language model."""

    provider: str
    model_name: str

    async def generate_structured(
        self,
        messages: list[BaseMessage],
        output_schema: type[T],
        *,
        temperature: float,
        max_tokens: int,
        timeout_ms: int,
    ) -> T: ...


class LLMService:
    """
    Structured-output client backed by OpenAI chat models.

    One ``ChatOpenAI`` instance is kept per (temperature, max_tokens) pair,
    since stages differ only in those two knobs.

    Attributes:
        provider: Provider name used in error context ("openai")
        model_name: Name of the model being used
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.provider = self.settings.llm_provider
        self.model_name = self.settings.openai_model
        self._clients: dict[tuple[float, int], ChatOpenAI] = {}

        logger.info(f"LLM service configured with model: {self.model_name}")

    def _client(self, temperature: float, max_tokens: int) -> ChatOpenAI:
        if not self.settings.openai_api_key:
            # Raised at request time so the failing stage is attached
            raise ValueError(
                "OpenAI API key is required (OPENAI_API_KEY). "
                "Set it in the environment or in .env."
            )

        key = (temperature, max_tokens)
        if key not in self._clients:
            self._clients[key] = ChatOpenAI(
                model=self.model_name,
                api_key=self.settings.openai_api_key,
                base_url=self.settings.openai_base_url,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        return self._clients[key]

    async def generate_structured(
        self,
        messages: list[BaseMessage],
        output_schema: type[T],
        *,
        temperature: float,
        max_tokens: int,
        timeout_ms: int,
    ) -> T:
        """
        Generate a structured response using a Pydantic model.

        Args:
            messages: System and user messages
            output_schema: Pydantic model class for the output
            temperature: Sampling temperature
            max_tokens: Output token budget
            timeout_ms: Request is cancelled after this many milliseconds

        Returns:
            Instance of the output schema

        Raises:
            TimeoutError: The request exceeded ``timeout_ms``
        """
        structured_llm = self._client(temperature, max_tokens).with_structured_output(output_schema)

        started = time.perf_counter()
        response = await run_with_timeout(structured_llm.ainvoke(messages), timeout_ms)
        latency_ms = round((time.perf_counter() - started) * 1000)

        logger.debug(
            f"{output_schema.__name__} response in {latency_ms}ms",
            extra={"latency_ms": latency_ms, "model": self.model_name},
        )
        return response


def create_messages(user_message: str, system_message: Optional[str] = None) -> list[BaseMessage]:
    """
    Create a list of messages for the LLM.

    Args:
        user_message: The stage prompt
        system_message: Optional system instructions

    Returns:
        List of BaseMessage objects
    """
    messages: list[BaseMessage] = []
    if system_message:
        messages.append(SystemMessage(content=system_message))
    messages.append(HumanMessage(content=user_message))
    return messages


def revalidate(response: object, output_schema: type[T]) -> T:
    """
    Validate model output against ``output_schema``.

    Clients may hand back a model instance, a subclass or a plain dict;
    every stage re-checks before trusting the result.
    """
    if isinstance(response, BaseModel):
        response = response.model_dump()
    return output_schema.model_validate(response)


@lru_cache()
def get_llm_service() -> LLMService:
    """
    Get the shared LLM service instance.

    Returns:
        LLMService: Instance configured from get_settings()
    """
    return LLMService()
