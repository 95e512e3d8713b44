"""Dependency resolution for slots and hooks.

Resolution is static: it depends only on the bound slot values, the hook
toggles and the ``needs`` graph.  A hook's ``if`` is *not* consulted here;
it is evaluated later by the executor, right before the hook runs.

Terminology:

* **enabled** slot: its bound value differs from the type's zero-value.
* **available** slot: every slot it needs is enabled and available
  (informational; slots are always rendered).
* **satisfied** hook: every need is met.  A slot need is met when the slot
  is enabled; a hook need is met when the referenced hook is selected.
* **selected** hook: satisfied and toggled on (non-optional hooks are
  always toggled on).
"""

from __future__ import annotations

import heapq
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from spackle.errors import HookToggleError, SlotValueError
from spackle.manifest.models import Hook, NumberText, Slot, SlotType

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"true"}
_FALSE_STRINGS = {"false"}


# ---------------------------------------------------------------------------
# Binding user input
# ---------------------------------------------------------------------------


def bind_values(slots: Sequence[Slot], raw: Mapping[str, Any] | None) -> Mapping[str, Any]:
    """Validate user-supplied values and bind them to typed slot values.

    Strings (as collected by a CLI or a form) are checked against the
    slot type; native Python values must already have the right type.
    Slots without a supplied value fall back to their declared default.

    Returns:
        A read-only ``{slot_key: value}`` mapping covering every slot.

    Raises:
        SlotValueError: Listing every unknown key, type mismatch and slot
            left without a value.
    """
    raw = dict(raw or {})
    problems: dict[str, str] = {}
    bound: dict[str, Any] = {}
    declared = {slot.key: slot for slot in slots}

    for key in raw:
        if key not in declared:
            problems[key] = "unknown slot"

    for slot in slots:
        if slot.key in raw:
            try:
                bound[slot.key] = coerce_value(slot.type, raw[slot.key])
            except ValueError as exc:
                problems[slot.key] = str(exc)
        elif slot.default is not None:
            bound[slot.key] = slot.default
        else:
            problems[slot.key] = "slot was not given a value and has no default"

    if problems:
        raise SlotValueError(problems)
    return MappingProxyType(bound)


def coerce_value(slot_type: SlotType, value: Any) -> str | int | float | bool:
    """Convert *value* to the native type for *slot_type*.

    Number strings become ``NumberText``: the text renders as written and
    the parsed number drives comparisons.  Underscore digit separators
    are rejected.

    Raises:
        ValueError: If the value cannot represent the slot type.
    """
    if slot_type.accepts(value):
        return value
    if not isinstance(value, str):
        raise ValueError(f"type mismatch: expected a {slot_type.value}, got {type(value).__name__}")

    text = value.strip()
    if slot_type is SlotType.BOOLEAN:
        lowered = text.lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"type mismatch: expected a Boolean, got {value!r}")

    # SlotType.NUMBER
    if "_" in text:
        raise ValueError(f"type mismatch: expected a Number, got {value!r}")
    number: int | float
    try:
        number = int(text)
    except ValueError:
        try:
            number = float(text)
        except ValueError:
            raise ValueError(f"type mismatch: expected a Number, got {value!r}") from None
        if not math.isfinite(number):
            raise ValueError(f"type mismatch: expected a finite Number, got {value!r}")
    return NumberText(text, number)


def bind_hook_toggles(hooks: Sequence[Hook], raw: Mapping[str, Any] | None) -> Mapping[str, bool]:
    """Validate user hook toggles.

    Only optional hooks can be toggled, and toggles must be booleans (or the
    strings ``true``/``false``).

    Raises:
        HookToggleError: Listing every offending toggle.
    """
    problems: dict[str, str] = {}
    toggles: dict[str, bool] = {}
    declared = {hook.key: hook for hook in hooks}

    for key, value in (raw or {}).items():
        hook = declared.get(key)
        if hook is None:
            problems[key] = "unknown hook"
            continue
        if not hook.is_optional:
            problems[key] = "hook is not optional"
            continue
        if isinstance(value, bool):
            toggles[key] = value
        elif isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS | _FALSE_STRINGS:
            toggles[key] = value.strip().lower() in _TRUE_STRINGS
        else:
            problems[key] = f"not a boolean: {value!r}"

    if problems:
        raise HookToggleError(problems)
    return MappingProxyType(toggles)


# ---------------------------------------------------------------------------
# Slots
# ---------------------------------------------------------------------------


def enabled_slots(slots: Sequence[Slot], values: Mapping[str, Any]) -> set[str]:
    """Return the keys of every slot whose bound value is non-zero."""
    return {slot.key for slot in slots if slot.is_enabled(values.get(slot.key))}


def available_slots(slots: Sequence[Slot], values: Mapping[str, Any]) -> set[str]:
    """Return the keys of slots whose ``needs`` are all enabled and available.

    Assumes the slot graph is acyclic (guaranteed by manifest validation).
    """
    enabled = enabled_slots(slots, values)
    by_key = {slot.key: slot for slot in slots}
    memo: dict[str, bool] = {}

    for key in topological_order([s.key for s in slots], {s.key: s.needs for s in slots}):
        memo[key] = all(
            need in enabled and memo.get(need, False)
            for need in by_key[key].needs
        )
    return {key for key, ok in memo.items() if ok}


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Resolution:
    """Static resolution of every hook for one set of inputs."""

    order: tuple[str, ...]
    enabled_slots: frozenset[str]
    satisfied: frozenset[str]
    selected: frozenset[str]
    toggled_off: frozenset[str] = field(default_factory=frozenset)

    def is_satisfied(self, key: str) -> bool:
        return key in self.satisfied

    def is_selected(self, key: str) -> bool:
        return key in self.selected


def resolve(
    slots: Sequence[Slot],
    hooks: Sequence[Hook],
    values: Mapping[str, Any],
    toggles: Mapping[str, bool] | None = None,
) -> Resolution:
    """Compute hook satisfaction and selection in one topological pass.

    Because needs are evaluated in dependency order, every hook sees the
    final state of the hooks it needs; the result does not depend on the
    declaration order.
    """
    toggles = toggles or {}
    enabled = enabled_slots(slots, values)
    by_key = {hook.key: hook for hook in hooks}
    order = execution_order(hooks)

    satisfied: set[str] = set()
    selected: set[str] = set()
    toggled_off: set[str] = set()

    for key in order:
        hook = by_key[key]
        met = all(
            (need in selected) if need in by_key else (need in enabled)
            for need in hook.needs
        )
        if met:
            satisfied.add(key)
        toggled = hook.is_toggled_on(toggles)
        if not toggled:
            toggled_off.add(key)
        if met and toggled:
            selected.add(key)

    logger.debug(
        "Resolved hooks: %d satisfied, %d selected of %d",
        len(satisfied),
        len(selected),
        len(hooks),
    )
    return Resolution(
        order=tuple(order),
        enabled_slots=frozenset(enabled),
        satisfied=frozenset(satisfied),
        selected=frozenset(selected),
        toggled_off=frozenset(toggled_off),
    )


def execution_order(hooks: Sequence[Hook]) -> list[str]:
    """Topological order of hook keys; ties follow declaration order."""
    keys = [hook.key for hook in hooks]
    return topological_order(keys, {hook.key: hook.needs for hook in hooks})


def topological_order(keys: Sequence[str], needs: Mapping[str, Sequence[str]]) -> list[str]:
    """Kahn's algorithm with declaration order as the tie-breaker.

    Edges to keys outside *keys* (for example hook -> slot needs) are
    ignored.

    Raises:
        ValueError: If the graph has a cycle.
    """
    position = {key: index for index, key in enumerate(keys)}
    pending = {key: 0 for key in keys}
    dependents: dict[str, list[str]] = {key: [] for key in keys}

    for key in keys:
        for need in needs.get(key, ()):
            if need in position:
                pending[key] += 1
                dependents[need].append(key)

    ready = [position[key] for key in keys if pending[key] == 0]
    heapq.heapify(ready)
    order: list[str] = []

    while ready:
        key = keys[heapq.heappop(ready)]
        order.append(key)
        for dependent in dependents[key]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                heapq.heappush(ready, position[dependent])

    if len(order) != len(keys):
        remaining = [key for key in keys if key not in set(order)]
        raise ValueError(f"needs graph has a cycle among: {', '.join(remaining)}")
    return order
