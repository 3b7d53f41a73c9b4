"""
Input validation for logigramme MCP server tool parameters.

Provides reusable validators that produce clear error messages for all
parameters received from LLM callers.
"""

from __future__ import annotations

import re
from typing import Any

from logigramme_mcp.shapes import SHAPE_REGISTRY


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Primitive validators
# ---------------------------------------------------------------------------

def validate_non_empty_string(value: Any, field_name: str) -> str:
    """Ensure *value* is a non-empty string after stripping whitespace."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field_name}' must be a non-empty string.")
    return value.strip()


def validate_string(value: Any, field_name: str, *, allow_empty: bool = True) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"'{field_name}' must be a string, got {type(value).__name__}.")
    if not allow_empty and not value.strip():
        raise ValidationError(f"'{field_name}' must not be empty.")
    return value


def validate_color(value: Any, field_name: str) -> str:
    """Validate a CSS-style hex color (#RGB, #RRGGBB, #RRGGBBAA)."""
    if not isinstance(value, str):
        raise ValidationError(f"'{field_name}' must be a color string, got {type(value).__name__}.")
    value = value.strip()
    if not re.match(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$", value):
        raise ValidationError(
            f"'{field_name}' must be a valid hex color (#RGB, #RRGGBB, or #RRGGBBAA), got '{value}'."
        )
    return value


def validate_number(
    value: Any,
    field_name: str,
    *,
    min_val: float | None = None,
    max_val: float | None = None,
) -> float:
    """Validate a numeric value and optional range."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(
            f"'{field_name}' must be a number, got {type(value).__name__}."
        )
    val = float(value)
    if val != val or val in (float("inf"), float("-inf")):
        raise ValidationError(f"'{field_name}' must be a finite number.")
    if min_val is not None and val < min_val:
        raise ValidationError(f"'{field_name}' must be >= {min_val}, got {val}.")
    if max_val is not None and val > max_val:
        raise ValidationError(f"'{field_name}' must be <= {max_val}, got {val}.")
    return val


def validate_positive_number(value: Any, field_name: str) -> float:
    """Validate that a number is positive (> 0)."""
    return validate_number(value, field_name, min_val=0.001)


def validate_enum(value: Any, field_name: str, allowed: set[str]) -> str:
    """Validate a choice (case-insensitive); returns it lower-cased."""
    if not isinstance(value, str):
        raise ValidationError(
            f"'{field_name}' must be a string, got {type(value).__name__}."
        )
    normalized = value.strip().lower()
    if normalized not in allowed:
        choices = ", ".join(sorted(allowed))
        raise ValidationError(
            f"'{field_name}' must be one of [{choices}], got '{value}'."
        )
    return normalized


def validate_list(value: Any, field_name: str, *, min_length: int = 0) -> list:
    """Ensure *value* is a list with at least *min_length* items."""
    if not isinstance(value, list):
        raise ValidationError(
            f"'{field_name}' must be a list, got {type(value).__name__}."
        )
    if len(value) < min_length:
        raise ValidationError(
            f"'{field_name}' must have at least {min_length} item(s), got {len(value)}."
        )
    return value


def validate_id_list(value: Any, field_name: str) -> list[str]:
    items = validate_list(value, field_name)
    for i, item in enumerate(items):
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(f"'{field_name}[{i}]' must be a non-empty string.")
    return [item.strip() for item in items]


# ---------------------------------------------------------------------------
# Tool actions
# ---------------------------------------------------------------------------

_EDITOR_ACTIONS = {
    "OPEN", "LOAD_JSON", "GET_JSON", "SAVE", "CLOSE", "LIST",
    "EXPORT_DRAWIO", "VALIDATE", "NOTIFICATIONS", "SET_STEPS", "SHAPES",
}
_EDIT_ACTIONS = {
    "ADD_NODE", "UPDATE_NODE", "UPDATE_STYLE", "UPDATE_EDGE", "DELETE_EDGE",
    "CONNECT", "SELECT", "SELECT_ALL", "CLEAR_SELECTION",
    "COPY", "PASTE", "DUPLICATE", "DELETE",
    "ALIGN", "DISTRIBUTE", "UNDO", "REDO",
    "SYNC_STEPS", "AUTO_LAYOUT", "REBUILD_FLOW",
    "DRAG_START", "DRAG_MOVE", "DRAG_END", "MOVE", "RESIZE", "KEY",
    "LEGEND_RESET", "LEGEND_ADD", "LEGEND_UPDATE", "LEGEND_DELETE",
}
_CONNECT_ACTIONS = {"ENTER", "EXIT", "CLICK_NODE", "CLICK_PANE", "STATUS"}

_VALID_ALIGNMENTS = {"left", "center", "right", "top", "middle", "bottom"}
_VALID_DIST_DIRECTIONS = {"horizontal", "vertical"}
_VALID_CONNECT_MODES = {"fanout", "chain"}
_VALID_EDGE_KINDS = {"orthogonal", "step", "smooth"}
_VALID_INTERACTIONS = {"navigate", "open", "tooltip"}

_PROCESS_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


def validate_action(value: Any, tool_name: str, allowed: set[str]) -> str:
    """Validate the action parameter for a tool."""
    if not isinstance(value, str) or not value.strip():
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"'{tool_name}' requires an 'action' parameter. Valid actions: {choices}."
        )
    normalized = value.strip().upper()
    if normalized not in allowed:
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"Unknown {tool_name} action '{value}'. Valid actions: {choices}."
        )
    return value.strip().lower()


def validate_process_id(value: Any) -> str:
    """Process ids double as file stems, so only a safe charset is allowed."""
    pid = validate_non_empty_string(value, "process_id")
    if not _PROCESS_ID.match(pid):
        raise ValidationError(
            f"'process_id' may only contain letters, digits, '.', '_' and '-', got '{pid}'."
        )
    return pid


def validate_alignment(value: Any) -> str:
    return validate_enum(value, "alignment", _VALID_ALIGNMENTS)


def validate_dist_direction(value: Any) -> str:
    return validate_enum(value, "direction", _VALID_DIST_DIRECTIONS)


def validate_connect_mode(value: Any) -> str:
    return validate_enum(value, "mode", _VALID_CONNECT_MODES)


def validate_edge_kind(value: Any) -> str:
    return validate_enum(value, "kind", _VALID_EDGE_KINDS)


def validate_shape(value: Any) -> str:
    """Validate a shape registry key."""
    shape = validate_non_empty_string(value, "shape")
    if shape not in SHAPE_REGISTRY:
        raise ValidationError(
            f"Unknown shape '{shape}'. Use editor(action='shapes') to list valid shapes."
        )
    return shape


def validate_offset(value: Any) -> tuple[float, float]:
    """Validate a paste offset given as [dx, dy]."""
    items = validate_list(value, "offset")
    if len(items) != 2:
        raise ValidationError(f"'offset' must have exactly 2 numbers, got {len(items)}.")
    return (validate_number(items[0], "offset[0]"), validate_number(items[1], "offset[1]"))


# ---------------------------------------------------------------------------
# Dict validators
# ---------------------------------------------------------------------------

def validate_step_dict(step: Any, index: int) -> None:
    """Validate a single step-list record {key, displayName?}."""
    if not isinstance(step, dict):
        raise ValidationError(f"Step at index {index} must be a dict/object.")
    if "key" in step and not isinstance(step["key"], str):
        raise ValidationError(f"Step at index {index}: 'key' must be a string.")
    for name_key in ("displayName", "display_name"):
        if name_key in step and not isinstance(step[name_key], str):
            raise ValidationError(f"Step at index {index}: '{name_key}' must be a string.")


def validate_style_patch(patch: Any) -> dict[str, Any]:
    """Validate a node style patch {fill?, stroke?, text?, width?, height?, fontSize?}."""
    if not isinstance(patch, dict):
        raise ValidationError(f"'style' must be a dict/object, got {type(patch).__name__}.")
    out: dict[str, Any] = {}
    for key, val in patch.items():
        if key in ("fill", "stroke", "text"):
            out[key] = validate_color(val, f"style.{key}")
        elif key in ("width", "height"):
            out[key] = validate_positive_number(val, f"style.{key}")
        elif key in ("fontSize", "font_size"):
            out["font_size"] = validate_number(val, "style.fontSize", min_val=1, max_val=200)
        else:
            raise ValidationError(f"Unknown style key '{key}'.")
    return out


def validate_interaction_dict(value: Any) -> dict[str, Any] | None:
    """Validate a node interaction {action, targetType?, targetProcessId?, targetUrl?, tooltip?}."""
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError("'interaction' must be a dict/object or null.")
    validate_enum(value.get("action"), "interaction.action", _VALID_INTERACTIONS)
    if "targetType" in value:
        validate_enum(value["targetType"], "interaction.targetType", {"process", "url"})
    for key in ("targetProcessId", "targetUrl", "tooltip"):
        if key in value and value[key] is not None and not isinstance(value[key], str):
            raise ValidationError(f"'interaction.{key}' must be a string.")
    return value


def validate_badge_dict(value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError("'badge' must be a dict/object or null.")
    if "text" in value:
        validate_string(value["text"], "badge.text")
    for key in ("color", "background"):
        if value.get(key) is not None:
            validate_color(value[key], f"badge.{key}")
    return value


def validate_legend_entry(entry: Any) -> dict[str, Any]:
    """Validate a legend item {key?, label, color?, background?}."""
    if not isinstance(entry, dict):
        raise ValidationError("Legend entry must be a dict/object.")
    if "label" in entry and not isinstance(entry["label"], str):
        raise ValidationError("Legend entry: 'label' must be a string.")
    if "key" in entry and not isinstance(entry["key"], str):
        raise ValidationError("Legend entry: 'key' must be a string.")
    for key in ("color", "background"):
        if entry.get(key) is not None:
            validate_color(entry[key], f"legend.{key}")
    return entry
