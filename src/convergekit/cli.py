"""Command-line interface for convergekit."""

from __future__ import annotations

import argparse
import json
import re
import signal
import sys
import threading
from decimal import Decimal
from pathlib import Path

from convergekit import __version__ as CK_VERSION
from convergekit.audit.explain import ExplainLog
from convergekit.config import DriverConfig
from convergekit.core.lifecycle import lifecycle_names, split_override_list
from convergekit.core.phases import phase_names
from convergekit.core.plan import target_names
from convergekit.core.request import ConvergenceRequest
from convergekit.driver import Collaborators, UpdateClusterResults, run_update_cluster
from convergekit.engine.loader import REPLAY_ENGINE, load_engine
from convergekit.errors import ConvergeError, InputValidationError
from convergekit.kubeconfig.builder import KubectlKubeconfigWriter, StateStoreKubeconfigBuilder
from convergekit.kubeconfig.contexts import KubectlContextStore
from convergekit.kubeconfig.identity import DEFAULT_ADMIN_TTL_S
from convergekit.state.store import FileStateStore

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|h|m|s)")
_DURATION_HELP = "use e.g. 18h, 90m or 1h30m"
_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def _parse_duration_s(value: str) -> int:
    raw = value
    text = value.strip().lower()
    if not text:
        raise argparse.ArgumentTypeError(f"invalid duration: '{raw}' ({_DURATION_HELP})")
    if text == "0":
        return 0

    multipliers = {
        "ms": Decimal("0.001"),
        "s": Decimal(1),
        "m": Decimal(60),
        "h": Decimal(3600),
    }
    total = Decimal(0)
    pos = 0
    while pos < len(text):
        match = _DURATION_PART_RE.match(text, pos)
        if match is None:
            raise argparse.ArgumentTypeError(f"invalid duration: '{raw}' ({_DURATION_HELP})")
        total += Decimal(match.group(1)) * multipliers[match.group(2)]
        pos = match.end()

    if total != total.to_integral_value():
        raise argparse.ArgumentTypeError(
            f"invalid duration: '{raw}' (must be a whole number of seconds)"
        )
    return int(total)


def _parse_bool(value: str) -> bool:
    text = value.strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean: '{value}' (use true or false)")


def _collect_overrides(flag_values: list[str] | None, config: DriverConfig) -> tuple[str, ...]:
    # The flag replaces the environment default rather than extending it.
    if flag_values:
        entries: list[str] = []
        for value in flag_values:
            entries.extend(split_override_list(value))
        return tuple(entries)
    return config.lifecycle_overrides


def _resolve_engine_name(args: argparse.Namespace, config: DriverConfig) -> str:
    # Explicit flags win over CONVERGEKIT_ENGINE.
    if args.engine:
        return args.engine
    if args.engine_replay:
        return REPLAY_ENGINE
    return config.engine


def _build_collaborators(args: argparse.Namespace, config: DriverConfig) -> Collaborators:
    state_root = Path(args.state).expanduser() if args.state else config.state_store
    store = FileStateStore(root=state_root, cluster_name=args.cluster_name)
    engine_name = _resolve_engine_name(args, config)
    engine = load_engine(engine_name, replay_path=args.engine_replay)
    return Collaborators(
        clusters=store,
        credentials=store,
        engine=engine,
        kubeconfig_builder=StateStoreKubeconfigBuilder(keystore=store),
        kubeconfig_writer=KubectlKubeconfigWriter(kubeconfig_path=config.kubeconfig, kubectl=config.kubectl),
        contexts=KubectlContextStore(kubectl=config.kubectl),
    )


def _run_with_cancel(
    request: ConvergenceRequest,
    collaborators: Collaborators,
    explain: ExplainLog | None,
) -> UpdateClusterResults:
    cancel = threading.Event()

    def _on_sigterm(_signum: int, _frame: object) -> None:
        print("WARNING: termination requested; cancelling convergence", file=sys.stderr)
        cancel.set()

    previous = signal.signal(signal.SIGTERM, _on_sigterm)
    try:
        return run_update_cluster(
            request,
            collaborators,
            out=sys.stdout,
            err=sys.stderr,
            explain=explain,
            cancel=cancel,
        )
    finally:
        signal.signal(signal.SIGTERM, previous)


def _run_driver(
    args: argparse.Namespace,
    request: ConvergenceRequest,
    config: DriverConfig,
) -> tuple[int, UpdateClusterResults | None]:
    explain = ExplainLog(Path(args.explain) if args.explain else None)
    try:
        collaborators = _build_collaborators(args, config)
        results = _run_with_cancel(request, collaborators, explain)
    except InputValidationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2, None
    except ConvergeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1, None
    return 0, results


def cmd_update_cluster(args: argparse.Namespace) -> int:
    config = DriverConfig.from_env()
    request = ConvergenceRequest(
        cluster_name=args.cluster_name,
        yes=bool(args.yes),
        target=args.target,
        phase=args.phase or "",
        lifecycle_overrides=_collect_overrides(args.lifecycle_overrides, config),
        ssh_public_key=args.ssh_public_key or "",
        out_dir=args.out or "",
        create_kubeconfig=bool(args.create_kube_config),
        admin_ttl_s=int(args.admin or 0),
        user=args.user or "",
        internal=bool(args.internal),
        allow_downgrade=bool(args.allow_kops_downgrade),
    )
    rc, _results = _run_driver(args, request, config)
    return rc


def _render_assets_table(results: UpdateClusterResults) -> str:
    lines: list[str] = []
    if results.image_assets:
        lines.append("IMAGE\tMIRROR")
        for image in results.image_assets:
            lines.append(f"{image.download_location}\t{image.canonical_location or '-'}")
        lines.append("")
    if results.file_assets:
        lines.append("FILE\tMIRROR\tSHA256")
        for asset in results.file_assets:
            lines.append(f"{asset.download_url}\t{asset.canonical_url or '-'}\t{asset.sha256 or '-'}")
        lines.append("")
    if not lines:
        return "No assets found\n"
    return "\n".join(lines)


def _render_assets_json(results: UpdateClusterResults) -> str:
    payload = {
        "images": [
            {"image": image.download_location, "mirror": image.canonical_location or None}
            for image in results.image_assets
        ],
        "files": [
            {
                "file": asset.download_url,
                "mirror": asset.canonical_url or None,
                "sha256": asset.sha256 or None,
            }
            for asset in results.file_assets
        ],
    }
    return json.dumps(payload, indent=2, sort_keys=True) + "\n"


def cmd_get_assets(args: argparse.Namespace) -> int:
    request = ConvergenceRequest(
        cluster_name=args.cluster_name,
        target="dryrun",
        get_assets=True,
        create_kubeconfig=False,
    )
    rc, results = _run_driver(args, request, DriverConfig.from_env())
    if rc != 0 or results is None:
        return rc
    if args.output == "json":
        sys.stdout.write(_render_assets_json(results))
    else:
        sys.stdout.write(_render_assets_table(results))
    return 0


def _add_driver_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("cluster_name", metavar="CLUSTER", help="Cluster name")
    parser.add_argument(
        "--state",
        help="State store directory (default: $CONVERGEKIT_STATE_STORE or ~/.config/convergekit/state)",
    )
    parser.add_argument("--engine", help="Convergence engine entry point name")
    parser.add_argument(
        "--engine-replay",
        help="Replay a recorded convergence outcome (convergence_replay.v0 JSON)",
    )
    parser.add_argument("--explain", metavar="PATH", help="Append decision events to PATH (JSON lines)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ck")
    parser.add_argument("--version", action="version", version=f"convergekit {CK_VERSION}")

    sub = parser.add_subparsers(dest="command", required=True)

    update = sub.add_parser("update", help="Update cloud or cluster resources")
    update_sub = update.add_subparsers(dest="subcommand", required=True)
    update_cluster = update_sub.add_parser(
        "cluster",
        help="Create or update cloud resources to match the cluster and instance group definitions",
    )
    _add_driver_arguments(update_cluster)
    update_cluster.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Create cloud resources; without --yes update is in dry run mode",
    )
    update_cluster.add_argument(
        "--target",
        default="direct",
        help=f"Target - {', '.join(target_names())}",
    )
    update_cluster.add_argument("--out", help="Path to write any local output")
    update_cluster.add_argument(
        "--ssh-public-key",
        help="SSH public key to use (deprecated: use create secret instead)",
    )
    update_cluster.add_argument(
        "--create-kube-config",
        type=_parse_bool,
        nargs="?",
        const=True,
        default=True,
        help="Will control automatically creating the kube config file on your local filesystem",
    )
    update_cluster.add_argument(
        "--admin",
        type=_parse_duration_s,
        nargs="?",
        const=DEFAULT_ADMIN_TTL_S,
        default=0,
        help="Also export a cluster admin user credential with the specified lifetime (default 18h)",
    )
    update_cluster.add_argument(
        "--user",
        help="Existing user in kubeconfig file to use. Implies --create-kube-config",
    )
    update_cluster.add_argument(
        "--internal",
        action="store_true",
        help="Use the cluster's internal DNS name. Implies --create-kube-config",
    )
    update_cluster.add_argument(
        "--allow-kops-downgrade",
        action="store_true",
        help="Allow an older version to update the cluster than last used",
    )
    update_cluster.add_argument(
        "--phase",
        help=f"Subset of tasks to run: {', '.join(phase_names())}",
    )
    update_cluster.add_argument(
        "--lifecycle-overrides",
        action="append",
        help=(
            "comma separated list of phase overrides, example: "
            "SecurityGroups=Ignore,InternetGateway=ExistsAndWarnIfChanges "
            f"(lifecycles: {', '.join(lifecycle_names())})"
        ),
    )
    update_cluster.set_defaults(func=cmd_update_cluster)

    get = sub.add_parser("get", help="Get resources")
    get_sub = get.add_subparsers(dest="subcommand", required=True)
    get_assets = get_sub.add_parser("assets", help="Display assets for cluster")
    _add_driver_arguments(get_assets)
    get_assets.add_argument(
        "--output",
        "-o",
        default="table",
        choices=["table", "json"],
        help="Output format",
    )
    get_assets.set_defaults(func=cmd_get_assets)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
