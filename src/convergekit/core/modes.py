from __future__ import annotations

from enum import Enum


class Mode(str, Enum):
    APPLY = "apply"
    DRY_RUN = "dry_run"


class Backend(str, Enum):
    DIRECT = "direct"
    DRYRUN = "dryrun"
    TERRAFORM = "terraform"
    CLOUDFORMATION = "cloudformation"


# Backends that only render local files; they never mutate live infrastructure.
RENDERING_BACKENDS = frozenset({Backend.TERRAFORM, Backend.CLOUDFORMATION})
