"""Pydantic schemas for model output."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eventcraft.db.enums import ProviderType


def normalize_vocabulary_tags(tags: list[str] | None) -> list[str]:
    """Lowercase tags, keep those in the provider-type vocabulary, dedupe."""
    normalized: list[str] = []
    for tag in tags or []:
        if not isinstance(tag, str):
            continue
        value = tag.strip().lower()
        if ProviderType.has_value(value) and value not in normalized:
            normalized.append(value)
    return normalized


class ChecklistStepOutput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    step_title: str = Field(..., min_length=1)
    description: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator("step_title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("step_title must not be blank")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_to_vocabulary(cls, value) -> list[str]:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            value = []
        return normalize_vocabulary_tags(value) or [ProviderType.OTHER.value]

    @field_validator("description", mode="before")
    @classmethod
    def _description_text(cls, value) -> str:
        return value.strip() if isinstance(value, str) else ""


class SearchCriteria(BaseModel):
    """Extra provider filters suggested by the model."""
    model_config = ConfigDict(extra="ignore")

    city: str | None = None
    province: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("city", "province", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()

    @field_validator("tags", mode="before")
    @classmethod
    def _string_tags(cls, value) -> list[str]:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            return []
        return [t.strip().lower() for t in value if isinstance(t, str) and t.strip()]


class StepRefinementOutput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    updated_description: str | None = None
    provider_tags: list[str] = Field(default_factory=list)
    search_criteria: SearchCriteria | None = None

    @field_validator("provider_tags", mode="before")
    @classmethod
    def _tags_to_vocabulary(cls, value) -> list[str]:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            return []
        return normalize_vocabulary_tags(value)

    @field_validator("search_criteria", mode="before")
    @classmethod
    def _criteria_object(cls, value):
        return value if isinstance(value, dict) else None
