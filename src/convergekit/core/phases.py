from __future__ import annotations

from enum import Enum

from convergekit.errors import InputValidationError


class Phase(str, Enum):
    ALL = ""
    NETWORK = "network"
    SECURITY = "security"
    CLUSTER = "cluster"


_PHASE_ALIASES = {
    # "iam" was the name of the security phase in older releases.
    "iam": Phase.SECURITY,
}


def phase_names() -> list[str]:
    return sorted(phase.value for phase in Phase if phase is not Phase.ALL)


def parse_phase(value: str | None) -> Phase:
    """Resolve a --phase value; an empty value selects every phase."""
    if not value:
        return Phase.ALL
    key = value.strip().lower()
    for phase in Phase:
        if phase is not Phase.ALL and phase.value == key:
            return phase
    alias = _PHASE_ALIASES.get(key)
    if alias is not None:
        return alias
    raise InputValidationError(
        f"unknown phase {value!r}, available phases: {','.join(phase_names())}"
    )
