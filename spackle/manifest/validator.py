"""Structural validation of a parsed ``Manifest``.

Checks performed, in order:

1. Slot keys are unique, hook keys are unique, and no key is both a slot
   and a hook (a ``needs`` entry naming it would be ambiguous).
2. Every ``needs`` entry resolves: slots may need slots; hooks may need
   slots or hooks.
3. The slot graph and the hook graph are acyclic.  The first cycle found
   is reported with its key sequence.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

from spackle.errors import ManifestError
from spackle.manifest.models import Manifest


def validate_manifest(manifest: Manifest, source: str | Path | None = None) -> None:
    """Raise ``ManifestError`` on the first structural problem in *manifest*."""
    slot_keys = manifest.slot_keys
    hook_keys = manifest.hook_keys

    duplicate_slots = _duplicates(slot_keys)
    if duplicate_slots:
        raise ManifestError(
            f"Duplicate keys found in slots: {', '.join(duplicate_slots)}", source=source
        )

    duplicate_hooks = _duplicates(hook_keys)
    if duplicate_hooks:
        raise ManifestError(
            f"Duplicate keys found in hooks: {', '.join(duplicate_hooks)}", source=source
        )

    shared = [key for key in slot_keys if key in set(hook_keys)]
    if shared:
        raise ManifestError(
            f"Keys declared as both slot and hook: {', '.join(shared)}", source=source
        )

    known_slots = set(slot_keys)
    known_hooks = set(hook_keys)

    for slot in manifest.slots:
        for need in slot.needs:
            if need in known_hooks:
                raise ManifestError(
                    f"slot {slot.key!r} needs hook {need!r}; slots may only need slots",
                    source=source,
                )
            if need not in known_slots:
                raise ManifestError(
                    f"slot {slot.key!r} needs unknown key {need!r}", source=source
                )

    for hook in manifest.hooks:
        for need in hook.needs:
            if need not in known_slots and need not in known_hooks:
                raise ManifestError(
                    f"hook {hook.key!r} needs unknown key {need!r}", source=source
                )

    slot_graph = {slot.key: list(slot.needs) for slot in manifest.slots}
    cycle = find_cycle(slot_graph)
    if cycle:
        raise ManifestError(
            f"Cycle in slot needs: {' -> '.join(cycle)}", source=source, cycle=cycle
        )

    # Slots never need hooks, so only hook -> hook edges can close a cycle.
    hook_graph = {
        hook.key: [need for need in hook.needs if need in known_hooks]
        for hook in manifest.hooks
    }
    cycle = find_cycle(hook_graph)
    if cycle:
        raise ManifestError(
            f"Cycle in hook needs: {' -> '.join(cycle)}", source=source, cycle=cycle
        )


def find_cycle(graph: Mapping[str, Sequence[str]]) -> list[str] | None:
    """Return the first cycle in *graph* as ``[a, b, ..., a]``, or ``None``.

    Nodes are visited in mapping order so the reported cycle is
    deterministic.  Edges to nodes absent from *graph* are ignored.
    """
    visiting: list[str] = []
    on_path: set[str] = set()
    done: set[str] = set()

    def visit(node: str) -> list[str] | None:
        visiting.append(node)
        on_path.add(node)
        for target in graph.get(node, ()):
            if target not in graph:
                continue
            if target in on_path:
                start = visiting.index(target)
                return visiting[start:] + [target]
            if target not in done:
                found = visit(target)
                if found:
                    return found
        visiting.pop()
        on_path.discard(node)
        done.add(node)
        return None

    for node in graph:
        if node not in done:
            found = visit(node)
            if found:
                return found
    return None


def _duplicates(keys: Iterable[str]) -> list[str]:
    counts = Counter(keys)
    return [key for key, count in counts.items() if count > 1]
