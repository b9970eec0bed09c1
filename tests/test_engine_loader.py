import argparse
from pathlib import Path

import pytest

from convergekit.cli import _resolve_engine_name
from convergekit.config import DriverConfig
from convergekit.engine.loader import available_engines, load_engine
from convergekit.engine.replay import ReplayEngine
from convergekit.errors import EngineUnavailableError


def test_replay_engine_is_built_in(tmp_path: Path) -> None:
    engine = load_engine("replay", replay_path=str(tmp_path / "r.json"))
    assert isinstance(engine, ReplayEngine)
    assert "replay" in available_engines()


def test_replay_engine_needs_path() -> None:
    with pytest.raises(EngineUnavailableError):
        load_engine("replay")


def test_no_engine_selected() -> None:
    with pytest.raises(EngineUnavailableError) as excinfo:
        load_engine("")
    assert "--engine-replay" in str(excinfo.value)


def test_unknown_engine_lists_available() -> None:
    with pytest.raises(EngineUnavailableError) as excinfo:
        load_engine("does-not-exist")
    assert "replay" in str(excinfo.value)


@pytest.mark.parametrize(
    ("engine", "engine_replay", "env_engine", "expected"),
    [
        ("custom", None, "from-env", "custom"),
        (None, "replay.json", "from-env", "replay"),
        (None, None, "from-env", "from-env"),
        (None, None, "", ""),
    ],
)
def test_engine_flags_win_over_environment(engine, engine_replay, env_engine, expected) -> None:
    args = argparse.Namespace(engine=engine, engine_replay=engine_replay)
    config = DriverConfig(state_store=Path("state"), engine=env_engine)
    assert _resolve_engine_name(args, config) == expected
