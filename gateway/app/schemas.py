from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr

SUPPORTED_INPUT_LANGUAGES = ("English", "Vietnamese", "Hinglish")
UNKNOWN_LANGUAGE = "Unknown"


class TranslationRequest(BaseModel):
    text: StrictStr = Field(..., min_length=1)
    source_language: StrictStr = "auto"
    target_language: StrictStr = "vi"

    model_config = ConfigDict(extra="forbid", frozen=True)


class TranslationResult(BaseModel):
    input_language: StrictStr = Field(UNKNOWN_LANGUAGE, alias="inputLanguage")
    improved: StrictStr = ""
    translation: StrictStr = ""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True)


class ErrorBody(BaseModel):
    error: StrictStr
    message: Optional[StrictStr] = None

    model_config = ConfigDict(extra="forbid")


__all__ = [
    "SUPPORTED_INPUT_LANGUAGES",
    "UNKNOWN_LANGUAGE",
    "TranslationRequest",
    "TranslationResult",
    "ErrorBody",
]
