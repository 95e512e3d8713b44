"""Unit tests for the manifest models (spackle.manifest.models).

Tests cover:
- SlotType zero-values and native type acceptance
- Slot defaults, enablement and needs de-duplication
- Hook optional toggles, ``if`` alias and command validation
- Manifest lookups
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from spackle.manifest.models import Hook, HookOptional, Manifest, NumberText, Slot, SlotType


# ---------------------------------------------------------------------------
# SlotType
# ---------------------------------------------------------------------------


class TestSlotType:
    @pytest.mark.unit
    def test_zero_values(self):
        assert SlotType.STRING.zero_value == ""
        assert SlotType.NUMBER.zero_value == 0
        assert SlotType.BOOLEAN.zero_value is False

    @pytest.mark.unit
    def test_number_rejects_bool(self):
        assert SlotType.NUMBER.accepts(3)
        assert SlotType.NUMBER.accepts(2.5)
        assert not SlotType.NUMBER.accepts(True)

    @pytest.mark.unit
    def test_boolean_and_string(self):
        assert SlotType.BOOLEAN.accepts(False)
        assert not SlotType.BOOLEAN.accepts("false")
        assert SlotType.STRING.accepts("")
        assert not SlotType.STRING.accepts(0)


# ---------------------------------------------------------------------------
# Slot
# ---------------------------------------------------------------------------


class TestSlot:
    @pytest.mark.unit
    def test_defaults(self):
        slot = Slot(key="name")
        assert slot.type is SlotType.STRING
        assert slot.default is None
        assert slot.needs == ()
        assert slot.label == "name"

    @pytest.mark.unit
    def test_label_prefers_name(self):
        assert Slot(key="name", name="Project name").label == "Project name"

    @pytest.mark.unit
    def test_default_must_match_type(self):
        with pytest.raises(ValidationError, match="must be a Number"):
            Slot(key="port", type="Number", default="8080")

    @pytest.mark.unit
    def test_bool_default_is_not_a_number(self):
        with pytest.raises(ValidationError):
            Slot(key="port", type="Number", default=True)

    @pytest.mark.unit
    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            Slot(key="x", type="Integer")

    @pytest.mark.unit
    def test_needs_deduplicated_in_order(self):
        slot = Slot(key="x", needs=["b", "a", "b"])
        assert slot.needs == ("b", "a")

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "slot_type, value, enabled",
        [
            ("String", "", False),
            ("String", "x", True),
            ("Number", 0, False),
            ("Number", 0.0, False),
            ("Number", -1, True),
            ("Number", NumberText("0.0", 0.0), False),
            ("Number", NumberText("00", 0), False),
            ("Number", NumberText("0.5", 0.5), True),
            ("Boolean", False, False),
            ("Boolean", True, True),
        ],
    )
    def test_is_enabled_compares_with_zero_value(self, slot_type, value, enabled):
        assert Slot(key="s", type=slot_type).is_enabled(value) is enabled

    @pytest.mark.unit
    def test_default_does_not_affect_enablement(self):
        slot = Slot(key="flag", type="Boolean", default=True)
        assert slot.is_enabled(False) is False

    @pytest.mark.unit
    def test_missing_value_is_disabled(self):
        assert Slot(key="s").is_enabled(None) is False

    @pytest.mark.unit
    def test_frozen(self):
        slot = Slot(key="s")
        with pytest.raises(ValidationError):
            slot.key = "other"


# ---------------------------------------------------------------------------
# Hook
# ---------------------------------------------------------------------------


class TestHook:
    @pytest.mark.unit
    def test_if_alias(self):
        hook = Hook.model_validate({"key": "h", "command": ["true"], "if": "{{ flag }}"})
        assert hook.condition == "{{ flag }}"

    @pytest.mark.unit
    def test_populate_by_field_name(self):
        hook = Hook(key="h", command=["true"], condition="true")
        assert hook.condition == "true"

    @pytest.mark.unit
    def test_empty_command_rejected(self):
        with pytest.raises(ValidationError):
            Hook(key="h", command=[])

    @pytest.mark.unit
    def test_blank_executable_rejected(self):
        with pytest.raises(ValidationError, match="executable"):
            Hook(key="h", command=["  ", "arg"])

    @pytest.mark.unit
    def test_non_optional_always_on(self):
        hook = Hook(key="h", command=["true"])
        assert not hook.is_optional
        assert hook.is_toggled_on({"h": False}) is True

    @pytest.mark.unit
    @pytest.mark.parametrize("default", [True, False])
    def test_optional_uses_default(self, default):
        hook = Hook(key="h", command=["true"], optional=HookOptional(default=default))
        assert hook.is_optional
        assert hook.is_toggled_on({}) is default

    @pytest.mark.unit
    def test_optional_toggle_overrides_default(self):
        hook = Hook(key="h", command=["true"], optional={"default": False})
        assert hook.is_toggled_on({"h": True}) is True

    @pytest.mark.unit
    def test_optional_default_must_be_bool(self):
        with pytest.raises(ValidationError):
            Hook(key="h", command=["true"], optional={"default": "yes"})


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class TestManifest:
    @pytest.mark.unit
    def test_empty(self):
        manifest = Manifest()
        assert manifest.name is None
        assert manifest.slots == ()
        assert manifest.hooks == ()

    @pytest.mark.unit
    def test_lookups(self):
        manifest = Manifest(
            slots=[Slot(key="a"), Slot(key="b")],
            hooks=[Hook(key="h", command=["true"])],
        )
        assert manifest.slot_keys == ["a", "b"]
        assert manifest.hook_keys == ["h"]
        assert manifest.slot("b").key == "b"
        assert manifest.slot("missing") is None
        assert manifest.hook("h").command == ("true",)
        assert manifest.hook("a") is None
