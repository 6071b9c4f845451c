from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# Spellings the model has been seen to use for the three question types
QUESTION_TYPE_ALIASES = {
    "mcq": "mcq",
    "multiple_choice": "mcq",
    "multiple-choice": "mcq",
    "multiplechoice": "mcq",
    "true_false": "true_false",
    "true/false": "true_false",
    "true-false": "true_false",
    "truefalse": "true_false",
    "tf": "true_false",
    "short_answer": "short_answer",
    "short-answer": "short_answer",
    "shortanswer": "short_answer",
    "short": "short_answer",
}


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys (``correctAnswer``, ``examQuestions``)."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class Flashcard(CamelModel):
    """A single flashcard."""
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)


class ExamQuestion(CamelModel):
    """
    A single exam question.

    ``correct_answer`` must be the full text of one of ``options`` for
    multiple-choice and true/false items; letter references such as "B"
    are rejected.
    """
    type: str
    question: str = Field(min_length=1)
    options: list[str] = []
    correct_answer: str
    explanation: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: object) -> str:
        key = str(v).strip().lower().replace(" ", "_")
        if key not in QUESTION_TYPE_ALIASES:
            raise ValueError(f"Unknown question type: {v!r}")
        return QUESTION_TYPE_ALIASES[key]

    @field_validator("options", mode="before")
    @classmethod
    def none_means_no_options(cls, v: object) -> object:
        return [] if v is None else v

    @field_validator("explanation", mode="before")
    @classmethod
    def none_means_no_explanation(cls, v: object) -> object:
        return "" if v is None else v

    @model_validator(mode="after")
    def check_answer_matches_options(self):
        if self.type == "mcq":
            if len(self.options) < 2:
                raise ValueError("Multiple-choice questions need at least two options")
            if self.correct_answer not in self.options:
                raise ValueError("correctAnswer must match one of the options verbatim")
        elif self.type == "true_false":
            if len(self.options) != 2:
                raise ValueError("True/false questions need exactly two options")
            if self.correct_answer not in self.options:
                raise ValueError("correctAnswer must match one of the options verbatim")
        elif not self.correct_answer.strip():
            raise ValueError("Short-answer questions need a non-empty correctAnswer")
        return self


class StudyMaterials(CamelModel):
    """The bundle generated for one document."""
    summary: str = Field(min_length=1)
    flashcards: list[Flashcard] = Field(min_length=1)
    exam_questions: list[ExamQuestion] = Field(min_length=1)
