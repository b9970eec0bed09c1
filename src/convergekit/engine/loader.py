"""Engine resolution.

Engines are discovered through the `convergekit.engines` entry-point group.
Each entry point names a factory called with the keyword options given to
load_engine(). The replay engine is always available.
"""

from __future__ import annotations

from importlib.metadata import entry_points
from pathlib import Path

from convergekit.engine.base import ConvergenceEngine
from convergekit.engine.replay import ReplayEngine
from convergekit.errors import EngineUnavailableError

ENTRY_POINT_GROUP = "convergekit.engines"
REPLAY_ENGINE = "replay"


def available_engines() -> list[str]:
    names = {ep.name for ep in entry_points(group=ENTRY_POINT_GROUP)}
    names.add(REPLAY_ENGINE)
    return sorted(names)


def load_engine(name: str, *, replay_path: str | None = None, **options: object) -> ConvergenceEngine:
    if not name:
        raise EngineUnavailableError(
            "no convergence engine selected; use --engine NAME or --engine-replay PATH "
            f"(available engines: {', '.join(available_engines())})"
        )
    if name == REPLAY_ENGINE:
        if not replay_path:
            raise EngineUnavailableError("the replay engine requires --engine-replay PATH")
        return ReplayEngine(path=Path(replay_path))

    for ep in entry_points(group=ENTRY_POINT_GROUP):
        if ep.name == name:
            factory = ep.load()
            engine = factory(**options)
            if not hasattr(engine, "converge"):
                raise EngineUnavailableError(f"engine {name!r} does not implement converge()")
            return engine

    raise EngineUnavailableError(
        f"no convergence engine named {name!r}, available engines: {', '.join(available_engines())}"
    )
