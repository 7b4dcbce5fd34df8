"""Boundary models for resolution input.

Accommodation-plan and policy payloads arrive as camelCase JSON-like dicts.
These models validate that shape and convert it into a frozen
ResolutionContext; nothing past this module sees raw dicts.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.resolution.context import ResolutionContext, ResolutionContextBuilder


class _InputModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _clean_ids(v: Any) -> list[str]:
    if v is None:
        return []
    if isinstance(v, str):
        v = [v]
    if not isinstance(v, list | tuple | set | frozenset):
        msg = f"expected a list of support ids (got {type(v).__name__})"
        raise ValueError(msg)
    cleaned: list[str] = []
    for entry in v:
        if not isinstance(entry, str):
            msg = f"support ids must be strings (got {type(entry).__name__})"
            raise ValueError(msg)
        if entry.strip():
            cleaned.append(entry.strip())
    return cleaned


class DistrictPolicyInput(_InputModel):
    blocked_tool_support_ids: list[str] = Field(default_factory=list)
    required_tool_support_ids: list[str] = Field(default_factory=list)

    @field_validator("blocked_tool_support_ids", "required_tool_support_ids", mode="before")
    @classmethod
    def _ids(cls, v: Any) -> list[str]:
        return _clean_ids(v)


class AdministrationOverrideInput(_InputModel):
    blocked: bool = False
    config: dict[str, Any] | None = None


class ItemRequirementsInput(_InputModel):
    required_support_ids: list[str] = Field(default_factory=list)
    restricted_support_ids: list[str] = Field(default_factory=list)
    per_support_config: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @field_validator("required_support_ids", "restricted_support_ids", mode="before")
    @classmethod
    def _ids(cls, v: Any) -> list[str]:
        return _clean_ids(v)


class AssessmentDefaultsInput(_InputModel):
    default_support_ids: list[str] = Field(default_factory=list)
    tool_configs: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @field_validator("default_support_ids", mode="before")
    @classmethod
    def _ids(cls, v: Any) -> list[str]:
        return _clean_ids(v)


class ResolutionInput(_InputModel):
    """One resolution request as supplied by the surrounding runtime."""

    assessment_id: str = ""
    section_id: str | None = None
    item_id: str | None = None
    student_accommodations: list[str] = Field(default_factory=list)
    student_legal_requirements: list[str] = Field(default_factory=list)
    student_prohibited_support_ids: list[str] = Field(default_factory=list)
    activate_at_init: list[str] = Field(default_factory=list)
    district_policy: DistrictPolicyInput | None = None
    administration_overrides: dict[str, AdministrationOverrideInput] = Field(default_factory=dict)
    item_requirements: ItemRequirementsInput | None = None
    assessment_defaults: AssessmentDefaultsInput | None = None

    @field_validator("student_accommodations", mode="before")
    @classmethod
    def _accommodations(cls, v: Any) -> list[str]:
        # PNP exports sometimes send {"supportId": true, ...}
        if isinstance(v, dict):
            return _clean_ids([k for k, enabled in v.items() if enabled])
        return _clean_ids(v)

    @field_validator(
        "student_legal_requirements",
        "student_prohibited_support_ids",
        "activate_at_init",
        mode="before",
    )
    @classmethod
    def _ids(cls, v: Any) -> list[str]:
        return _clean_ids(v)

    def to_builder(self) -> ResolutionContextBuilder:
        builder = (
            ResolutionContextBuilder(self.assessment_id)
            .for_section(self.section_id)
            .for_item(self.item_id)
        )
        if (
            self.student_accommodations
            or self.student_legal_requirements
            or self.student_prohibited_support_ids
            or self.activate_at_init
        ):
            builder.with_student(
                accommodations=self.student_accommodations,
                legal_requirements=self.student_legal_requirements,
                prohibited=self.student_prohibited_support_ids,
                activate_at_init=self.activate_at_init,
            )
        if self.district_policy is not None:
            builder.with_district_policy(
                blocked=self.district_policy.blocked_tool_support_ids,
                required=self.district_policy.required_tool_support_ids,
            )
        for support_id, override in self.administration_overrides.items():
            builder.with_administration_override(
                support_id, blocked=override.blocked, config=override.config
            )
        if self.item_requirements is not None:
            builder.with_item_requirements(
                required=self.item_requirements.required_support_ids,
                restricted=self.item_requirements.restricted_support_ids,
                per_support_config=self.item_requirements.per_support_config,
            )
        if self.assessment_defaults is not None:
            builder.with_assessment_defaults(
                default_support_ids=self.assessment_defaults.default_support_ids,
                tool_configs=self.assessment_defaults.tool_configs,
            )
        return builder

    def to_context(self, *, version: int = 0) -> ResolutionContext:
        return self.to_builder().with_version(version).build()


def parse_resolution_input(payload: dict[str, Any]) -> ResolutionInput:
    """Validate a raw payload. Raises pydantic.ValidationError on malformed input."""
    return ResolutionInput.model_validate(payload)
