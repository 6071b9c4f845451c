"""
Prompt construction for study-material generation.

Pure functions: the same text and language always produce the same prompt.
"""

from dataclasses import dataclass
from enum import Enum

from app.core.config import settings
from app.core.exceptions import ValidationError


class Language(str, Enum):
    ENGLISH = "english"
    ARABIC = "arabic"


LANGUAGE_NAMES = {
    Language.ENGLISH: "English",
    Language.ARABIC: "Arabic",
}

TRUE_FALSE_LABELS = {
    Language.ENGLISH: ("True", "False"),
    Language.ARABIC: ("صحيح", "خطأ"),
}


@dataclass(frozen=True)
class SizeBand:
    name: str
    min_flashcards: int
    max_flashcards: int
    num_questions: int


SHORT_BAND = SizeBand("short", 5, 8, 5)
MEDIUM_BAND = SizeBand("medium", 10, 15, 8)
LONG_BAND = SizeBand("long", 15, 20, 10)

SHORT_MAX_WORDS = 500  # Fewer than this is short
MEDIUM_MAX_WORDS = 2000  # Up to and including this is medium


def parse_language(value: str | None) -> Language:
    """Resolve a client-supplied language, defaulting to English."""
    if not value:
        return Language.ENGLISH
    try:
        return Language(value.strip().lower())
    except ValueError:
        supported = ", ".join(lang.value for lang in Language)
        raise ValidationError(f"Unsupported language: {value}. Supported: {supported}")


def count_words(text: str) -> int:
    return len(text.split())


def select_size_band(word_count: int) -> SizeBand:
    if word_count < SHORT_MAX_WORDS:
        return SHORT_BAND
    if word_count <= MEDIUM_MAX_WORDS:
        return MEDIUM_BAND
    return LONG_BAND


def build_study_prompt(text: str, language: Language | str = Language.ENGLISH) -> str:
    """
    Build the single instruction string sent to the model.

    The band is chosen from the full extracted text; only the first
    ``prompt_max_chars`` characters are included in the prompt.
    """
    language = parse_language(language.value if isinstance(language, Language) else language)
    language_name = LANGUAGE_NAMES[language]
    true_label, false_label = TRUE_FALSE_LABELS[language]

    word_count = count_words(text)
    band = select_size_band(word_count)
    source = text[: settings.prompt_max_chars]

    return f"""You are an expert educational content creator. Analyze the following document and create comprehensive study materials in {language_name}.

Document content:
{source}

Generate the following study materials (respond ONLY with valid JSON, no markdown formatting):

1. A summary (1-4 paragraphs based on content length)
2. Flashcards (each with "question" and "answer")
3. Exam questions:
   - Mix of: multiple choice ("mcq"), true/false ("true_false"), and short answer ("short_answer")
   - Each question must have: "type", "question", "options", "correctAnswer", "explanation"

This document is {band.name} ({word_count} words). Create {band.min_flashcards}-{band.max_flashcards} flashcards and {band.num_questions} exam questions.

Important rules:
- Adapt the number of flashcards and questions to the content length
- For short content (< {SHORT_MAX_WORDS} words): {SHORT_BAND.min_flashcards}-{SHORT_BAND.max_flashcards} flashcards, {SHORT_BAND.num_questions} questions
- For medium content ({SHORT_MAX_WORDS}-{MEDIUM_MAX_WORDS} words): {MEDIUM_BAND.min_flashcards}-{MEDIUM_BAND.max_flashcards} flashcards, {MEDIUM_BAND.num_questions} questions
- For long content (> {MEDIUM_MAX_WORDS} words): {LONG_BAND.min_flashcards}-{LONG_BAND.max_flashcards} flashcards, {LONG_BAND.num_questions} questions
- All content must be in {language_name}
- For MCQ, provide 4 options as full text strings (NOT letters like A, B, C, D)
- CRITICAL: "correctAnswer" MUST be the EXACT full text of the correct option from the "options" array, NOT a letter reference
- For true/false, options must be exactly ["{true_label}", "{false_label}"]
- For short answer, "options" must be an empty array
- Explanations should be brief (1-2 sentences) and reference the material

Return ONLY this JSON structure:
{{
  "summary": "...",
  "flashcards": [{{"question": "...", "answer": "..."}}],
  "examQuestions": [
    {{
      "type": "mcq",
      "question": "What is the main purpose of X?",
      "options": ["Full text of option 1", "Full text of option 2", "Full text of option 3", "Full text of option 4"],
      "correctAnswer": "Full text of option 1",
      "explanation": "Brief explanation here"
    }}
  ]
}}"""
