"""Command line interface for podseeder."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import PopulateProgressDisplay, render_configuration_summary, render_plan
from .errors import PodSeederError


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _resolve_max_parallel(value: Optional[int]) -> int:
    if value is not None:
        return value
    env_value = os.getenv("PODSEEDER_MAX_PARALLEL")
    if not env_value:
        return 1
    try:
        return int(env_value)
    except ValueError as exc:
        raise CLIError(f"PODSEEDER_MAX_PARALLEL must be an integer, got {env_value!r}") from exc


async def _run_populate(
    source: Path,
    server_url: str,
    checkpoint_path: Optional[Path],
    add_acl: bool,
    add_acr: bool,
    max_parallel: int,
    token: Optional[str],
    dry_run: bool,
) -> int:
    from .models import PopulateConfig
    from .orchestrator import PopulateOrchestrator
    from .services import (
        CheckpointStore,
        SessionCache,
        find_accounts_from_dir,
        resolve_identity,
        static_token_factory,
    )
    from .utils.events import EventEmitter

    orders = await find_accounts_from_dir(str(source), f"{server_url.rstrip('/')}/.account/")
    if not orders:
        raise CLIError(f"no account subdirectories found in {source}")
    identities = [resolve_identity(order, server_url) for order in orders]

    display = PopulateProgressDisplay()
    checkpoint = None
    if checkpoint_path is not None:
        checkpoint = await CheckpointStore.open(str(checkpoint_path))

    config = PopulateConfig(add_acl=add_acl, add_acr=add_acr, max_parallelism=max_parallel)
    sessions = SessionCache(static_token_factory(token))

    events = EventEmitter()
    events.on("plan_ready", display.on_plan_ready)
    events.on("task_start", display.on_task_start)
    events.on("task_complete", display.on_task_complete)
    events.on("task_fail", display.on_task_fail)
    events.on("checkpoint_saved", display.on_checkpoint_saved)

    async with PopulateOrchestrator(sessions, config, checkpoint, events=events) as populator:
        if dry_run:
            plan = await populator.plan(identities)
            render_plan(identities, plan.planned, plan.servers, plan.skipped)
            return 0

        try:
            result = await populator.populate(identities)
        finally:
            display.stop()

    display.on_finish(result)
    if not result.all_success:
        print(f"ERROR: {result.failed} upload(s) failed", file=sys.stderr)
        return 1
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="podseeder",
        description="Populate Solid pods from a directory with one subdirectory per account.",
    )
    parser.add_argument("source", nargs="?", type=Path, help="Directory with one subdirectory per pod")
    parser.add_argument(
        "-s",
        "--server-url",
        default=None,
        help="Base URL of the pod server (default from PODSEEDER_SERVER_URL)",
    )
    parser.add_argument(
        "-c",
        "--checkpoint",
        type=Path,
        default=None,
        help="Checkpoint file used to resume interrupted runs (default from PODSEEDER_CHECKPOINT)",
    )
    parser.add_argument("--acl", action="store_true", help="Attach a WAC .acl document to each file")
    parser.add_argument("--acr", action="store_true", help="Attach an ACP .acr document to each file")
    parser.add_argument(
        "-p",
        "--max-parallel",
        type=int,
        default=None,
        help="Maximum concurrent uploads per server (default from PODSEEDER_MAX_PARALLEL or 1)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only show discovered pods and the number of files to upload",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument("--version", action="version", version="podseeder 0.1.0")
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.source is None:
        parser.print_help()
        return 0

    source = Path(args.source).expanduser()
    if not source.is_dir():
        print(f"ERROR: source is not a directory: {source}", file=sys.stderr)
        return 1

    server_url = args.server_url or os.getenv("PODSEEDER_SERVER_URL")
    if not server_url:
        print("ERROR: --server-url or PODSEEDER_SERVER_URL is required", file=sys.stderr)
        return 1

    checkpoint_path = args.checkpoint
    if checkpoint_path is None and os.getenv("PODSEEDER_CHECKPOINT"):
        checkpoint_path = Path(os.environ["PODSEEDER_CHECKPOINT"])

    try:
        max_parallel = _resolve_max_parallel(args.max_parallel)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    token = os.getenv("PODSEEDER_TOKEN")
    render_configuration_summary(
        {
            "Source": str(source),
            "Server": server_url,
            "Checkpoint": str(checkpoint_path) if checkpoint_path else "(none)",
            "WAC .acl": "yes" if args.acl else "no",
            "ACP .acr": "yes" if args.acr else "no",
            "Max Parallel": max_parallel,
            "Token": "set" if token else "-",
            "Dry Run": "yes" if args.dry_run else "no",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(
            _run_populate(
                source=source,
                server_url=server_url,
                checkpoint_path=checkpoint_path,
                add_acl=args.acl,
                add_acr=args.acr,
                max_parallel=max_parallel,
                token=token,
                dry_run=args.dry_run,
            )
        )
    except (CLIError, PodSeederError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
