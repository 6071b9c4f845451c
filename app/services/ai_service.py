"""
AI Service for generating study materials using Anthropic Claude.
"""
import json
import re
import time

import anthropic
import httpx
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.exceptions import GenerationError, MalformedResponseError
from app.core.logging_config import get_logger
from app.schemas.study import StudyMaterials
from app.services.prompt_builder import Language, build_study_prompt

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an expert educational content creator. "
    "Always return a single valid JSON object and nothing else."
)


class StudyMaterialGenerator:
    """
    Process-wide handle on the Anthropic API.

    Built once at startup and closed at shutdown. The underlying client is
    created on first use so the app can boot without a key in development.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 3000,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.http_client = http_client  # Transport override, used by tests
        self._client: anthropic.AsyncAnthropic | None = None

    @classmethod
    def from_settings(cls) -> "StudyMaterialGenerator":
        return cls(
            api_key=settings.anthropic_api_key,
            model=settings.claude_model,
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_tokens,
        )

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self.api_key:
                logger.error("Anthropic API key not configured")
                raise GenerationError("ANTHROPIC_API_KEY not configured")
            # One attempt per upload; a failed call surfaces as GenerationError
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                max_retries=0,
                http_client=self.http_client,
            )
        return self._client

    async def complete(self, prompt: str) -> str:
        """
        Submit a prompt and return the text of the single completion.

        Raises:
            GenerationError: If the API call fails or returns no text
        """
        start_time = time.time()
        logger.info(f"Starting AI generation | model={self.model} | max_tokens={self.max_tokens}")
        logger.debug(f"Prompt length: {len(prompt)} chars")

        client = self.client
        try:
            message = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(f"AI generation failed | duration={duration_ms:.2f}ms | error={str(e)}")
            raise GenerationError(f"AI generation failed: {str(e)}")

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"AI generation completed | duration={duration_ms:.2f}ms | "
            f"input_tokens={message.usage.input_tokens} | output_tokens={message.usage.output_tokens}"
        )
        if message.stop_reason == "max_tokens":
            logger.warning("AI response hit the max_tokens ceiling and is likely truncated")

        text_blocks = [block.text for block in message.content if getattr(block, "type", None) == "text"]
        if not text_blocks:
            raise GenerationError("AI returned an empty response")
        return "".join(text_blocks).strip()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("Anthropic client closed")


def strip_json_fences(text: str) -> str:
    """Strip markdown code fences (```json ... ```) from AI responses."""
    stripped = re.sub(r"^```(?:json)?\s*\n?", "", text.strip())
    stripped = re.sub(r"\n?```\s*$", "", stripped)
    return stripped.strip()


def _load_json_object(text: str) -> object:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        # Commentary around the object: fall back to the outermost braces
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise
        return json.loads(text[start : end + 1])


def parse_study_materials(raw: str) -> StudyMaterials:
    """
    Parse and validate a model completion.

    Raises:
        MalformedResponseError: If the text is not a JSON object with a valid
            ``summary``, ``flashcards`` and ``examQuestions``
    """
    cleaned = strip_json_fences(raw)
    try:
        data = _load_json_object(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"AI response is not valid JSON: {e} | head={cleaned[:200]!r}")
        raise MalformedResponseError("Failed to parse AI response as JSON")

    if not isinstance(data, dict):
        raise MalformedResponseError("AI response must be a JSON object")

    try:
        return StudyMaterials.model_validate(data)
    except PydanticValidationError as e:
        logger.error(f"AI response has the wrong shape: {e.error_count()} error(s) | {e.errors()[:3]}")
        raise MalformedResponseError(f"AI response has an invalid structure: {e.errors()[0]['msg']}")


async def generate_study_materials(
    generator: StudyMaterialGenerator,
    text: str,
    language: Language | str = Language.ENGLISH,
) -> StudyMaterials:
    """Build the prompt, call the model once, and validate what comes back."""
    prompt = build_study_prompt(text, language)
    raw = await generator.complete(prompt)
    materials = parse_study_materials(raw)
    logger.info(
        f"Generated study materials | flashcards={len(materials.flashcards)} | "
        f"questions={len(materials.exam_questions)}"
    )
    return materials
