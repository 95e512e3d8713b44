"""Typed representation of ``spackle.toml``.

All models are frozen pydantic v2 models: the manifest is parsed once per
operation and never mutated afterwards.  Structural checks that involve
more than one entry (duplicate keys, needs references, cycles) live in
``spackle.manifest.validator``.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)

SlotValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr]


class NumberText(str):
    """A Number slot value supplied as text.

    Renders exactly as the user wrote it (``1.10`` stays ``1.10``) while
    comparing by its parsed ``value``, so zero-value checks and template
    comparisons behave numerically.
    """

    value: int | float

    def __new__(cls, text: str, value: int | float) -> NumberText:
        instance = super().__new__(cls, text)
        instance.value = value
        return instance

    def __repr__(self) -> str:
        return f"NumberText({str.__repr__(self)}, {self.value!r})"

    def _other(self, other: object) -> object:
        if isinstance(other, NumberText):
            return other.value
        if isinstance(other, (int, float)) and not isinstance(other, bool):
            return other
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        number = self._other(other)
        if number is NotImplemented:
            return str.__eq__(self, other)
        return self.value == number

    def __ne__(self, other: object) -> bool:
        return not self == other

    __hash__ = str.__hash__

    def __lt__(self, other: object) -> bool:
        number = self._other(other)
        return str.__lt__(self, other) if number is NotImplemented else self.value < number

    def __le__(self, other: object) -> bool:
        number = self._other(other)
        return str.__le__(self, other) if number is NotImplemented else self.value <= number

    def __gt__(self, other: object) -> bool:
        number = self._other(other)
        return str.__gt__(self, other) if number is NotImplemented else self.value > number

    def __ge__(self, other: object) -> bool:
        number = self._other(other)
        return str.__ge__(self, other) if number is NotImplemented else self.value >= number


class SlotType(str, Enum):
    """The three recognised slot kinds."""

    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"

    @property
    def zero_value(self) -> str | int | bool:
        """The value that leaves a slot of this type disabled."""
        return _ZERO_VALUES[self]

    def accepts(self, value: object) -> bool:
        """Return ``True`` if *value* is a native Python value of this type."""
        if self is SlotType.BOOLEAN:
            return isinstance(value, bool)
        if self is SlotType.NUMBER:
            return isinstance(value, (int, float, NumberText)) and not isinstance(value, bool)
        return isinstance(value, str)


_ZERO_VALUES: dict[SlotType, str | int | bool] = {
    SlotType.STRING: "",
    SlotType.NUMBER: 0,
    SlotType.BOOLEAN: False,
}


class Slot(BaseModel):
    """A named, typed input supplied by the user and exposed to templates."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1, description="Unique identifier used in templates")
    type: SlotType = Field(default=SlotType.STRING)
    name: str | None = Field(default=None, description="Human-readable label")
    description: str | None = Field(default=None)
    default: SlotValue | None = Field(default=None, description="Fallback value when none is supplied")
    needs: tuple[str, ...] = Field(default=(), description="Slot keys gating this slot")

    @field_validator("needs")
    @classmethod
    def _dedupe_needs(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(value))

    @model_validator(mode="after")
    def _default_matches_type(self) -> "Slot":
        if self.default is not None and not self.type.accepts(self.default):
            raise ValueError(
                f"default for slot {self.key!r} must be a {self.type.value}, "
                f"got {type(self.default).__name__}"
            )
        return self

    def is_enabled(self, value: object) -> bool:
        """A slot is enabled when its bound value differs from the zero-value."""
        if value is None:
            return False
        if isinstance(value, NumberText):
            value = value.value
        return value != self.type.zero_value

    @property
    def label(self) -> str:
        return self.name or self.key


class HookOptional(BaseModel):
    """``optional = { default = <bool> }`` on a hook."""

    model_config = ConfigDict(frozen=True)

    default: StrictBool


class Hook(BaseModel):
    """A command run inside the rendered output after templating."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., min_length=1)
    command: tuple[str, ...] = Field(..., min_length=1, description="argv; every token is templated")
    name: str | None = Field(default=None)
    description: str | None = Field(default=None)
    optional: HookOptional | None = Field(default=None)
    needs: tuple[str, ...] = Field(default=())
    condition: str | None = Field(
        default=None,
        alias="if",
        description="Template boolean expression evaluated right before running",
    )

    @field_validator("needs")
    @classmethod
    def _dedupe_needs(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(value))

    @field_validator("command")
    @classmethod
    def _non_empty_executable(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value[0].strip():
            raise ValueError("the first command token (the executable) must not be empty")
        return value

    @property
    def is_optional(self) -> bool:
        return self.optional is not None

    def is_toggled_on(self, toggles: Mapping[str, bool]) -> bool:
        """Resolve the user toggle; non-optional hooks are always on."""
        if self.optional is None:
            return True
        return toggles.get(self.key, self.optional.default)

    @property
    def label(self) -> str:
        return self.name or self.key


class Manifest(BaseModel):
    """The whole ``spackle.toml`` document."""

    model_config = ConfigDict(frozen=True)

    name: str | None = Field(default=None, description="Declared project name")
    ignore: tuple[str, ...] = Field(default=(), description="Relative paths or globs to skip")
    slots: tuple[Slot, ...] = Field(default=())
    hooks: tuple[Hook, ...] = Field(default=())

    def slot(self, key: str) -> Slot | None:
        return next((s for s in self.slots if s.key == key), None)

    def hook(self, key: str) -> Hook | None:
        return next((h for h in self.hooks if h.key == key), None)

    @property
    def slot_keys(self) -> list[str]:
        return [s.key for s in self.slots]

    @property
    def hook_keys(self) -> list[str]:
        return [h.key for h in self.hooks]
