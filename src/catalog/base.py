from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from src.catalog.content import StructuralContext, ToolLevel
from src.runtime.bands import ZBand


@dataclass(frozen=True)
class AffordanceOptions:
    """Caller-supplied options for building a toolbar affordance."""

    disabled: bool = False
    aria_label: str | None = None
    tooltip: str | None = None
    css_class: str | None = None
    on_activate: Callable[[], None] | None = None


@dataclass(frozen=True)
class Affordance:
    """Render-ready description of a tool button. Rendering is the caller's job."""

    tool_id: str
    label: str
    icon: str
    aria_label: str
    disabled: bool = False
    tooltip: str | None = None
    css_class: str | None = None
    on_activate: Callable[[], None] | None = None


@dataclass(frozen=True)
class InstanceOptions:
    config: Mapping[str, Any] = field(default_factory=dict)
    initial_state: Any = None
    on_close: Callable[[], None] | None = None


@dataclass(frozen=True)
class ToolInstanceSpec:
    """Opaque handle describing a mounted tool; held by the runtime coordinator."""

    tool_id: str
    level: ToolLevel
    scope_id: str
    band: ZBand
    config: Mapping[str, Any] = field(default_factory=dict)
    initial_state: Any = None
    on_close: Callable[[], None] | None = None


def scope_id_for(context: StructuralContext) -> str:
    if context.level == ToolLevel.element and context.element_id:
        return context.element_id
    if context.level in (ToolLevel.item, ToolLevel.element) and context.item_id:
        return context.item_id
    if context.level in (ToolLevel.section, ToolLevel.passage, ToolLevel.rubric) and context.section_id:
        return context.section_id
    return context.assessment_id


class ToolDescriptor(ABC):
    """Abstract base class for tool descriptors held by the ToolCatalog."""

    @property
    @abstractmethod
    def tool_id(self) -> str:
        """Stable tool key."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name."""
        ...

    @property
    def description(self) -> str:
        return ""

    @property
    def icon(self) -> str:
        return self.tool_id

    @property
    def supported_levels(self) -> frozenset[ToolLevel]:
        """Levels this tool attaches to. Fail-closed: empty by default."""
        return frozenset()

    @property
    def external_support_ids(self) -> tuple[str, ...]:
        """Accommodation vocabulary tokens mapping to this tool (many-to-one)."""
        return (self.tool_id,)

    @property
    def band(self) -> ZBand:
        """Z-band the tool's overlay renders in."""
        return ZBand.modal

    @abstractmethod
    def is_relevant(self, context: StructuralContext) -> bool:
        """Pass 2: whether the tool is pertinent to this content.

        Must be pure and fast; called only after Pass 1 has allowed the tool.
        """
        ...

    def create_affordance(
        self, context: StructuralContext, options: AffordanceOptions | None = None
    ) -> Affordance:
        options = options or AffordanceOptions()
        return Affordance(
            tool_id=self.tool_id,
            label=self.name,
            icon=self.icon,
            aria_label=options.aria_label or f"Open {self.name.lower()} tool",
            disabled=options.disabled,
            tooltip=options.tooltip or self.name,
            css_class=options.css_class,
            on_activate=options.on_activate,
        )

    def create_instance(
        self, context: StructuralContext, options: InstanceOptions | None = None
    ) -> ToolInstanceSpec:
        options = options or InstanceOptions()
        return ToolInstanceSpec(
            tool_id=self.tool_id,
            level=context.level,
            scope_id=scope_id_for(context),
            band=self.band,
            config=dict(options.config),
            initial_state=options.initial_state,
            on_close=options.on_close,
        )


class FunctionToolDescriptor(ToolDescriptor):
    """Descriptor assembled from plain values and callables.

    Lets integrators register a tool without subclassing:
    FunctionToolDescriptor("periodicTable", "Periodic Table",
    supported_levels={ToolLevel.item}, external_support_ids=("periodicTable",),
    relevance=has_science_content).
    """

    def __init__(
        self,
        tool_id: str,
        name: str,
        *,
        relevance: Callable[[StructuralContext], bool],
        supported_levels: frozenset[ToolLevel] | set[ToolLevel] = frozenset(),
        external_support_ids: tuple[str, ...] | list[str] = (),
        description: str = "",
        icon: str | None = None,
        band: ZBand = ZBand.modal,
        affordance_factory: Callable[[StructuralContext, AffordanceOptions], Affordance] | None = None,
        instance_factory: Callable[[StructuralContext, InstanceOptions], ToolInstanceSpec] | None = None,
    ) -> None:
        if not tool_id.strip():
            raise ValueError("tool_id must be a non-empty string")
        self._tool_id = tool_id
        self._name = name
        self._relevance = relevance
        self._levels = frozenset(supported_levels)
        self._support_ids = tuple(external_support_ids) or (tool_id,)
        self._description = description
        self._icon = icon or tool_id
        self._band = band
        self._affordance_factory = affordance_factory
        self._instance_factory = instance_factory

    @property
    def tool_id(self) -> str:
        return self._tool_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def icon(self) -> str:
        return self._icon

    @property
    def supported_levels(self) -> frozenset[ToolLevel]:
        return self._levels

    @property
    def external_support_ids(self) -> tuple[str, ...]:
        return self._support_ids

    @property
    def band(self) -> ZBand:
        return self._band

    def is_relevant(self, context: StructuralContext) -> bool:
        return self._relevance(context)

    def create_affordance(
        self, context: StructuralContext, options: AffordanceOptions | None = None
    ) -> Affordance:
        if self._affordance_factory is None:
            return super().create_affordance(context, options)
        return self._affordance_factory(context, options or AffordanceOptions())

    def create_instance(
        self, context: StructuralContext, options: InstanceOptions | None = None
    ) -> ToolInstanceSpec:
        if self._instance_factory is None:
            return super().create_instance(context, options)
        return self._instance_factory(context, options or InstanceOptions())
