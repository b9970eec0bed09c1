"""Per-task lifecycle policies and the override parser."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from enum import Enum

from convergekit.errors import InputValidationError

OVERRIDE_SYNTAX = "TaskName=lifecycleName"


class Lifecycle(str, Enum):
    # Create or update the resource to match the desired state.
    SYNC = "Sync"
    # Leave the resource alone.
    IGNORE = "Ignore"
    # Sync, but only warn when the caller lacks permission to read it.
    WARN_IF_INSUFFICIENT_ACCESS = "WarnIfInsufficientAccess"
    # The resource must already exist and match; mismatch is a failure.
    EXISTS_AND_VALIDATES = "ExistsAndValidates"
    # The resource must already exist; mismatch is only reported.
    EXISTS_AND_WARN_IF_CHANGES = "ExistsAndWarnIfChanges"


_LIFECYCLE_BY_NAME: dict[str, Lifecycle] = {item.value: item for item in Lifecycle}


def lifecycle_names() -> list[str]:
    return sorted(_LIFECYCLE_BY_NAME)


class LifecycleOverrides(Mapping[str, Lifecycle]):
    """Read-only task name to lifecycle mapping.

    A task without an entry keeps its default lifecycle.
    """

    def __init__(self, items: Mapping[str, Lifecycle] | None = None) -> None:
        self._items: dict[str, Lifecycle] = dict(items or {})

    def __getitem__(self, task_name: str) -> Lifecycle:
        return self._items[task_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __hash__(self) -> int:
        return hash(frozenset(self._items.items()))

    def __repr__(self) -> str:
        return f"LifecycleOverrides({self._items!r})"

    def to_dict(self) -> dict[str, str]:
        return {name: lifecycle.value for name, lifecycle in sorted(self._items.items())}


def parse_lifecycle(name: str) -> Lifecycle:
    lifecycle = _LIFECYCLE_BY_NAME.get(name)
    if lifecycle is None:
        raise InputValidationError(
            f"unknown lifecycle {name!r}, available lifecycle: {','.join(lifecycle_names())}"
        )
    return lifecycle


def split_override_list(value: str | None) -> list[str]:
    """Split a comma separated flag or env value into override entries."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_lifecycle_overrides(entries: Iterable[str]) -> LifecycleOverrides:
    overrides: dict[str, Lifecycle] = {}
    for entry in entries:
        values = entry.split("=")
        if len(values) != 2 or not values[0] or not values[1]:
            raise InputValidationError(
                "incorrect syntax for lifecycle-overrides, correct syntax is "
                f"{OVERRIDE_SYNTAX}, override provided: {entry!r}"
            )
        task_name, lifecycle_name = values
        # Repeated task names are allowed; the last one wins.
        overrides[task_name] = parse_lifecycle(lifecycle_name)
    return LifecycleOverrides(overrides)
