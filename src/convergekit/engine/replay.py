"""Replay a recorded convergence outcome.

Useful offline and in tests: the engine reads a `convergence_replay.v0`
document instead of talking to a cloud. Document shape:

    {
      "schema_version": "convergence_replay.v0",
      "has_pending_changes": true,
      "tasks": {"SecurityGroup/nodes": {"phase": "security", "changed": true}},
      "image_assets": [{"download_location": "...", "canonical_location": "..."}],
      "file_assets": [{"download_url": "...", "canonical_url": "...", "sha256": "..."}],
      "rendered_files": {"kubernetes.tf": "..."},
      "error": null
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from convergekit.core.modes import RENDERING_BACKENDS
from convergekit.core.phases import Phase
from convergekit.engine.base import (
    ConvergenceEngine,
    ConvergenceEngineError,
    ConvergenceResult,
    EngineRequest,
    FileAsset,
    ImageAsset,
)
from convergekit.errors import ConvergenceCancelled

SCHEMA_VERSION = "convergence_replay.v0"


def _expect_dict(value: object, *, path: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConvergenceEngineError(f"{path} must be an object")
    return value


def _expect_list(value: object, *, path: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConvergenceEngineError(f"{path} must be an array")
    return value


def _image_assets(items: list) -> list[ImageAsset]:
    assets: list[ImageAsset] = []
    for idx, item in enumerate(items):
        item = _expect_dict(item, path=f"image_assets[{idx}]")
        location = item.get("download_location")
        if not isinstance(location, str) or not location.strip():
            raise ConvergenceEngineError(f"image_assets[{idx}].download_location is required")
        assets.append(
            ImageAsset(
                download_location=location,
                canonical_location=str(item.get("canonical_location") or ""),
            )
        )
    return assets


def _file_assets(items: list) -> list[FileAsset]:
    assets: list[FileAsset] = []
    for idx, item in enumerate(items):
        item = _expect_dict(item, path=f"file_assets[{idx}]")
        url = item.get("download_url")
        if not isinstance(url, str) or not url.strip():
            raise ConvergenceEngineError(f"file_assets[{idx}].download_url is required")
        assets.append(
            FileAsset(
                download_url=url,
                canonical_url=str(item.get("canonical_url") or ""),
                sha256=str(item.get("sha256") or ""),
            )
        )
    return assets


def _select_tasks(tasks: dict, request: EngineRequest) -> dict[str, dict]:
    selected: dict[str, dict] = {}
    for name, raw in sorted(tasks.items()):
        task = dict(_expect_dict(raw, path=f"tasks.{name}"))
        task_phase = str(task.get("phase") or "")
        if request.phase != Phase.ALL and task_phase and task_phase != request.phase.value:
            continue
        lifecycle = request.lifecycle_overrides.get(name)
        if lifecycle is not None:
            task["lifecycle"] = lifecycle.value
        selected[name] = task
    return selected


def _safe_relative(name: str) -> PurePosixPath:
    rel = PurePosixPath(name)
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        raise ConvergenceEngineError(f"rendered_files entry {name!r} must be a relative path")
    return rel


@dataclass
class ReplayEngine(ConvergenceEngine):
    path: Path

    def _load(self) -> dict:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConvergenceEngineError(f"error reading replay file {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConvergenceEngineError(f"{self.path}: invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise ConvergenceEngineError(f"{self.path}: document must be an object")
        if payload.get("schema_version") != SCHEMA_VERSION:
            raise ConvergenceEngineError(f"{self.path}: schema_version must be {SCHEMA_VERSION!r}")
        return payload

    def converge(self, request: EngineRequest) -> ConvergenceResult:
        if request.cancel is not None and request.cancel.is_set():
            raise ConvergenceCancelled("convergence cancelled before the engine started")

        payload = self._load()
        error = payload.get("error")
        if error:
            raise ConvergenceEngineError(str(error))

        tasks = _select_tasks(_expect_dict(payload.get("tasks"), path="tasks"), request)
        result = ConvergenceResult(
            backend_used=request.backend,
            task_outcomes=tasks,
            image_assets=_image_assets(_expect_list(payload.get("image_assets"), path="image_assets")),
            file_assets=_file_assets(_expect_list(payload.get("file_assets"), path="file_assets")),
            has_pending_changes=bool(payload.get("has_pending_changes")),
        )

        if request.backend in RENDERING_BACKENDS and not request.get_assets:
            rendered = _expect_dict(payload.get("rendered_files"), path="rendered_files")
            out_dir = Path(request.out_dir)
            for name, content in sorted(rendered.items()):
                target = out_dir / _safe_relative(name)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(str(content), encoding="utf-8")
        return result
