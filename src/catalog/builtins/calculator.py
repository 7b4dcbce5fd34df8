from __future__ import annotations

from src.catalog.base import Affordance, AffordanceOptions, ToolDescriptor
from src.catalog.content import StructuralContext, ToolLevel, has_math_content
from src.runtime.bands import ZBand


class CalculatorTool(ToolDescriptor):
    """Basic, scientific or graphing calculator; the variant comes from resolved config."""

    @property
    def tool_id(self) -> str:
        return "calculator"

    @property
    def name(self) -> str:
        return "Calculator"

    @property
    def description(self) -> str:
        return "Multi-type calculator (basic, scientific, graphing)"

    @property
    def supported_levels(self) -> frozenset[ToolLevel]:
        return frozenset({
            ToolLevel.section,
            ToolLevel.item,
            ToolLevel.passage,
            ToolLevel.rubric,
            ToolLevel.element,
        })

    @property
    def external_support_ids(self) -> tuple[str, ...]:
        return ("calculator", "graphingCalculator", "basicCalculator", "scientificCalculator")

    @property
    def band(self) -> ZBand:
        return ZBand.modal

    def is_relevant(self, context: StructuralContext) -> bool:
        # toolbars at section/item level always offer it once allowed
        if context.level in (ToolLevel.section, ToolLevel.item):
            return True
        return has_math_content(context)

    def create_affordance(
        self, context: StructuralContext, options: AffordanceOptions | None = None
    ) -> Affordance:
        affordance = super().create_affordance(context, options)
        if options is None or options.aria_label is None:
            return Affordance(
                tool_id=affordance.tool_id,
                label=affordance.label,
                icon=affordance.icon,
                aria_label="Calculator - Perform mathematical calculations",
                disabled=affordance.disabled,
                tooltip=affordance.tooltip,
                css_class=affordance.css_class,
                on_activate=affordance.on_activate,
            )
        return affordance
