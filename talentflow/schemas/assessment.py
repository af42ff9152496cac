from __future__ import annotations

from typing import Annotated, Literal, Union, get_args

from pydantic import BaseModel, Field, model_validator


QuestionType = Literal["single-choice", "multi-choice", "short-text", "long-text", "numeric", "file-upload"]
QUESTION_TYPES: tuple[str, ...] = get_args(QuestionType)
CHOICE_TYPES: tuple[str, ...] = ("single-choice", "multi-choice")


class TextLimits(BaseModel):
    max_length: int = Field(default=500, ge=1)


class NumericBounds(BaseModel):
    min: float | None = None
    max: float | None = None

    @model_validator(mode="after")
    def _ordered(self) -> "NumericBounds":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("numeric bounds: min must not exceed max")
        return self


class _QuestionBase(BaseModel):
    id: str = Field(min_length=1)
    prompt: str = ""
    required: bool = False


class SingleChoiceQuestion(_QuestionBase):
    type: Literal["single-choice"] = "single-choice"
    options: list[str] = Field(min_length=1)


class MultiChoiceQuestion(_QuestionBase):
    type: Literal["multi-choice"] = "multi-choice"
    options: list[str] = Field(min_length=1)


class ShortTextQuestion(_QuestionBase):
    type: Literal["short-text"] = "short-text"
    validation: TextLimits = Field(default_factory=TextLimits)


class LongTextQuestion(_QuestionBase):
    type: Literal["long-text"] = "long-text"
    validation: TextLimits = Field(default_factory=TextLimits)


class NumericQuestion(_QuestionBase):
    type: Literal["numeric"] = "numeric"
    validation: NumericBounds = Field(default_factory=NumericBounds)


class FileUploadQuestion(_QuestionBase):
    type: Literal["file-upload"] = "file-upload"
    # Limits the submitted file name.
    validation: TextLimits = Field(default_factory=TextLimits)


Question = Annotated[
    Union[
        SingleChoiceQuestion,
        MultiChoiceQuestion,
        ShortTextQuestion,
        LongTextQuestion,
        NumericQuestion,
        FileUploadQuestion,
    ],
    Field(discriminator="type"),
]


class Section(BaseModel):
    id: str = Field(min_length=1)
    title: str = ""
    questions: list[Question] = Field(default_factory=list)


class Assessment(BaseModel):
    job_id: str
    title: str = ""
    sections: list[Section] = Field(default_factory=list)


class AssessmentUpsert(BaseModel):
    """Editor payload. ``job_id`` is taken from the route, never from the body."""

    title: str = ""
    sections: list[Section] = Field(default_factory=list)
