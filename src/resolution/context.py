"""ResolutionContext: the frozen per-resolution input snapshot, and its builder.

Collections are tuples (insertion order, de-duplicated) so that iteration
order is stable across processes; string frozensets are not.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def _ids(values: Iterable[str] | None) -> tuple[str, ...]:
    if not values:
        return ()
    return tuple(dict.fromkeys(v.strip() for v in values if v and v.strip()))


def _frozen_map(values: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not values:
        return _EMPTY
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class StudentProfile:
    """Personal Needs Profile data for one student."""

    accommodations: tuple[str, ...] = ()
    legal_requirements: tuple[str, ...] = ()
    prohibited: tuple[str, ...] = ()
    activate_at_init: tuple[str, ...] = ()


@dataclass(frozen=True)
class DistrictPolicy:
    blocked: tuple[str, ...] = ()
    required: tuple[str, ...] = ()


@dataclass(frozen=True)
class AdministrationOverride:
    """Per-support override for one test sitting."""

    blocked: bool = False
    config: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class ItemRequirements:
    required: tuple[str, ...] = ()
    restricted: tuple[str, ...] = ()
    per_support_config: Mapping[str, Mapping[str, Any]] = field(default_factory=lambda: _EMPTY)


@dataclass(frozen=True)
class AssessmentDefaults:
    default_support_ids: tuple[str, ...] = ()
    tool_configs: Mapping[str, Mapping[str, Any]] = field(default_factory=lambda: _EMPTY)


@dataclass(frozen=True)
class ResolutionContext:
    """Everything one resolution call may look at. Never mutated after build()."""

    assessment_id: str = ""
    section_id: str | None = None
    item_id: str | None = None
    student: StudentProfile | None = None
    district: DistrictPolicy | None = None
    administration: Mapping[str, AdministrationOverride] = field(default_factory=lambda: _EMPTY)
    item: ItemRequirements | None = None
    assessment_defaults: AssessmentDefaults | None = None
    version: int = 0

    @property
    def context_id(self) -> str:
        parts = [self.assessment_id or "-", self.section_id or "-", self.item_id or "-"]
        return f"{':'.join(parts)}@v{self.version}"

    def mentioned_support_ids(self) -> tuple[str, ...]:
        """Every support id referenced by any source, de-duplicated, sorted."""
        mentioned: list[str] = []
        if self.district is not None:
            mentioned += self.district.blocked
            mentioned += self.district.required
        mentioned += self.administration.keys()
        if self.item is not None:
            mentioned += self.item.restricted
            mentioned += self.item.required
            mentioned += self.item.per_support_config.keys()
        if self.student is not None:
            mentioned += self.student.legal_requirements
            mentioned += self.student.accommodations
        if self.assessment_defaults is not None:
            mentioned += self.assessment_defaults.default_support_ids
        return tuple(sorted(set(mentioned)))


class ResolutionContextBuilder:
    """Assemble a ResolutionContext from independently sourced fragments.

    Fragments may be supplied in any order; build() always yields a fresh
    frozen snapshot and the builder may be reused for the next item.
    """

    def __init__(self, assessment_id: str = "") -> None:
        self._assessment_id = assessment_id
        self._section_id: str | None = None
        self._item_id: str | None = None
        self._student: StudentProfile | None = None
        self._district: DistrictPolicy | None = None
        self._administration: dict[str, AdministrationOverride] = {}
        self._item: ItemRequirements | None = None
        self._defaults: AssessmentDefaults | None = None
        self._version = 0

    def for_section(self, section_id: str | None) -> ResolutionContextBuilder:
        self._section_id = section_id
        return self

    def for_item(self, item_id: str | None) -> ResolutionContextBuilder:
        self._item_id = item_id
        return self

    def with_version(self, version: int) -> ResolutionContextBuilder:
        self._version = version
        return self

    def with_student(
        self,
        *,
        accommodations: Iterable[str] | None = None,
        legal_requirements: Iterable[str] | None = None,
        prohibited: Iterable[str] | None = None,
        activate_at_init: Iterable[str] | None = None,
    ) -> ResolutionContextBuilder:
        self._student = StudentProfile(
            accommodations=_ids(accommodations),
            legal_requirements=_ids(legal_requirements),
            prohibited=_ids(prohibited),
            activate_at_init=_ids(activate_at_init),
        )
        return self

    def with_district_policy(
        self,
        *,
        blocked: Iterable[str] | None = None,
        required: Iterable[str] | None = None,
    ) -> ResolutionContextBuilder:
        self._district = DistrictPolicy(blocked=_ids(blocked), required=_ids(required))
        return self

    def with_administration_override(
        self,
        support_id: str,
        *,
        blocked: bool = False,
        config: Mapping[str, Any] | None = None,
    ) -> ResolutionContextBuilder:
        self._administration[support_id] = AdministrationOverride(
            blocked=blocked,
            config=_frozen_map(config) if config else None,
        )
        return self

    def with_item_requirements(
        self,
        *,
        required: Iterable[str] | None = None,
        restricted: Iterable[str] | None = None,
        per_support_config: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> ResolutionContextBuilder:
        self._item = ItemRequirements(
            required=_ids(required),
            restricted=_ids(restricted),
            per_support_config=_frozen_map(
                {k: _frozen_map(v) for k, v in (per_support_config or {}).items()}
            ),
        )
        return self

    def without_item(self) -> ResolutionContextBuilder:
        """Drop item-level fragments, e.g. when resolving for a section toolbar."""
        self._item = None
        self._item_id = None
        return self

    def with_assessment_defaults(
        self,
        *,
        default_support_ids: Iterable[str] | None = None,
        tool_configs: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> ResolutionContextBuilder:
        self._defaults = AssessmentDefaults(
            default_support_ids=_ids(default_support_ids),
            tool_configs=_frozen_map(
                {k: _frozen_map(v) for k, v in (tool_configs or {}).items()}
            ),
        )
        return self

    def build(self) -> ResolutionContext:
        return ResolutionContext(
            assessment_id=self._assessment_id,
            section_id=self._section_id,
            item_id=self._item_id,
            student=self._student,
            district=self._district,
            administration=_frozen_map(self._administration),
            item=self._item,
            assessment_defaults=self._defaults,
            version=self._version,
        )
