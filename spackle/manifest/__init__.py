"""Manifest model for spackle projects.

Loads ``spackle.toml`` into frozen pydantic models and validates its
structure (unique keys, resolvable ``needs``, acyclic graphs).

Quick usage::

    from spackle.manifest import load

    manifest = load("path/to/project")
    for slot in manifest.slots:
        print(slot.key, slot.type.value)
"""

from spackle.manifest.loader import (
    CONFIG_FILE,
    load,
    load_dir,
    load_file,
    parse_manifest,
    read_single_file_body,
    split_front_matter,
)
from spackle.manifest.models import Hook, HookOptional, Manifest, NumberText, Slot, SlotType, SlotValue
from spackle.manifest.validator import find_cycle, validate_manifest

__all__ = [
    "CONFIG_FILE",
    "Hook",
    "HookOptional",
    "Manifest",
    "NumberText",
    "Slot",
    "SlotType",
    "SlotValue",
    "find_cycle",
    "load",
    "load_dir",
    "load_file",
    "parse_manifest",
    "read_single_file_body",
    "split_front_matter",
    "validate_manifest",
]
