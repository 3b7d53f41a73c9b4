"""Tests for input validation of the MCP tool parameters."""

import pytest

from logigramme_mcp.validation import (
    ValidationError,
    validate_action,
    validate_alignment,
    validate_badge_dict,
    validate_color,
    validate_connect_mode,
    validate_edge_kind,
    validate_enum,
    validate_id_list,
    validate_interaction_dict,
    validate_legend_entry,
    validate_list,
    validate_non_empty_string,
    validate_number,
    validate_offset,
    validate_positive_number,
    validate_process_id,
    validate_shape,
    validate_step_dict,
    validate_style_patch,
    _CONNECT_ACTIONS,
    _EDIT_ACTIONS,
    _EDITOR_ACTIONS,
)


# ===================================================================
# Primitive validators
# ===================================================================


class TestValidateNonEmptyString:
    def test_strips_whitespace(self) -> None:
        assert validate_non_empty_string("  hi  ", "f") == "hi"

    def test_whitespace_only(self) -> None:
        with pytest.raises(ValidationError, match="non-empty"):
            validate_non_empty_string("   ", "field")

    def test_none(self) -> None:
        with pytest.raises(ValidationError, match="non-empty"):
            validate_non_empty_string(None, "field")


class TestValidateColor:
    def test_short_and_long_hex(self) -> None:
        assert validate_color("#F00", "c") == "#F00"
        assert validate_color(" #f59ad5 ", "c") == "#f59ad5"
        assert validate_color("#FF0000AA", "c") == "#FF0000AA"

    def test_named_colors_rejected(self) -> None:
        with pytest.raises(ValidationError, match="hex color"):
            validate_color("pink", "c")

    def test_not_a_string(self) -> None:
        with pytest.raises(ValidationError, match="color string"):
            validate_color(42, "c")


class TestValidateNumber:
    def test_int_becomes_float(self) -> None:
        assert validate_number(42, "n") == 42.0

    def test_bool_rejected(self) -> None:
        with pytest.raises(ValidationError, match="number"):
            validate_number(True, "n")

    def test_nan_rejected(self) -> None:
        with pytest.raises(ValidationError, match="finite"):
            validate_number(float("nan"), "n")

    def test_range(self) -> None:
        with pytest.raises(ValidationError, match=">="):
            validate_number(-1, "n", min_val=0)
        with pytest.raises(ValidationError, match="<="):
            validate_number(500, "n", max_val=200)

    def test_positive(self) -> None:
        assert validate_positive_number(1, "w") == 1.0
        with pytest.raises(ValidationError):
            validate_positive_number(0, "w")


class TestValidateLists:
    def test_min_length(self) -> None:
        with pytest.raises(ValidationError, match="at least 1"):
            validate_list([], "ids", min_length=1)

    def test_not_a_list(self) -> None:
        with pytest.raises(ValidationError, match="must be a list"):
            validate_list("a", "ids")

    def test_id_list_strips(self) -> None:
        assert validate_id_list([" a", "b "], "ids") == ["a", "b"]

    def test_id_list_rejects_blank(self) -> None:
        with pytest.raises(ValidationError, match=r"ids\[1\]"):
            validate_id_list(["a", ""], "ids")


def test_enum_is_case_insensitive() -> None:
    assert validate_enum(" Chain ", "mode", {"chain"}) == "chain"
    with pytest.raises(ValidationError, match="one of"):
        validate_enum("loop", "mode", {"chain", "fanout"})


# ===================================================================
# Domain validators
# ===================================================================


class TestValidateAction:
    def test_returns_lower_case(self) -> None:
        assert validate_action("Open", "editor", _EDITOR_ACTIONS) == "open"
        assert validate_action("click_node", "connect_mode", _CONNECT_ACTIONS) == "click_node"

    def test_missing(self) -> None:
        with pytest.raises(ValidationError, match="requires an 'action'"):
            validate_action("", "edit", _EDIT_ACTIONS)

    def test_unknown(self) -> None:
        with pytest.raises(ValidationError, match="Unknown edit action 'explode'"):
            validate_action("explode", "edit", _EDIT_ACTIONS)


class TestValidateProcessId:
    def test_valid(self) -> None:
        assert validate_process_id(" P-01.v2 ") == "P-01.v2"

    def test_path_traversal_rejected(self) -> None:
        with pytest.raises(ValidationError, match="may only contain"):
            validate_process_id("../etc")


def test_enum_helpers() -> None:
    assert validate_alignment("CENTER") == "center"
    assert validate_connect_mode("fanout") == "fanout"
    assert validate_edge_kind("Smooth") == "smooth"
    with pytest.raises(ValidationError):
        validate_connect_mode("off")


class TestValidateShape:
    def test_known(self) -> None:
        assert validate_shape("gateway-exclusive") == "gateway-exclusive"

    def test_unknown(self) -> None:
        with pytest.raises(ValidationError, match="Unknown shape 'hexagon'"):
            validate_shape("hexagon")


class TestValidateOffset:
    def test_pair(self) -> None:
        assert validate_offset([5, -10]) == (5.0, -10.0)

    def test_wrong_length(self) -> None:
        with pytest.raises(ValidationError, match="exactly 2"):
            validate_offset([1, 2, 3])


class TestValidateDicts:
    def test_step(self) -> None:
        validate_step_dict({"key": "a", "displayName": "A"}, 0)
        with pytest.raises(ValidationError, match="index 2"):
            validate_step_dict("a", 2)
        with pytest.raises(ValidationError, match="'key' must be a string"):
            validate_step_dict({"key": 3}, 0)

    def test_style_patch_normalises_font_size(self) -> None:
        patch = validate_style_patch({"fill": "#fff", "fontSize": 14, "width": 120})
        assert patch == {"fill": "#fff", "font_size": 14.0, "width": 120.0}

    def test_style_patch_unknown_key(self) -> None:
        with pytest.raises(ValidationError, match="Unknown style key 'opacity'"):
            validate_style_patch({"opacity": 0.5})

    def test_interaction(self) -> None:
        assert validate_interaction_dict(None) is None
        ok = {"action": "open", "targetType": "url", "targetUrl": "https://x"}
        assert validate_interaction_dict(ok) is ok
        with pytest.raises(ValidationError, match="interaction.action"):
            validate_interaction_dict({"action": "explode"})
        with pytest.raises(ValidationError, match="interaction.targetType"):
            validate_interaction_dict({"action": "open", "targetType": "file"})

    def test_badge(self) -> None:
        assert validate_badge_dict(None) is None
        with pytest.raises(ValidationError, match="badge.color"):
            validate_badge_dict({"text": "1", "color": "green"})

    def test_legend_entry(self) -> None:
        entry = {"key": "7", "label": "Audit", "color": "#000000"}
        assert validate_legend_entry(entry) is entry
        with pytest.raises(ValidationError, match="'label' must be a string"):
            validate_legend_entry({"label": 5})
