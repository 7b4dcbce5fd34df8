"""Project-wide constants shared by rendering layers and the state store."""

from __future__ import annotations

# Z-index band floors. Each band spans [floor, floor + Z_BAND_SPAN).
# critical overlays are open-ended (5000+).
Z_BAND_BASE = 0
Z_BAND_TOOL = 1000
Z_BAND_MODAL = 2000
Z_BAND_CONTROL = 3000
Z_BAND_HIGHLIGHT = 4000
Z_BAND_CRITICAL = 5000
Z_BAND_SPAN = 1000

# Scoped state keys: assessment:section:item:element (+ tool id held separately).
STATE_KEY_DELIMITER = ":"
SECTION_SCOPE_MARKER = "__section__"

# Tool instance ids: tool:scopeLevel:scopeId[:inline]
INSTANCE_ID_DELIMITER = ":"
INLINE_ROLE_SUFFIX = "inline"
