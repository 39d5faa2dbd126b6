from __future__ import annotations

"""spotgate command-line interface entrypoint."""

import argparse
import json
import logging
import os
import sys

import yaml

from spotgate.adapters.process_worker import ProcessWorkerManager
from spotgate.core.config import AnalysisConfig
from spotgate.core.errors import AnalysisFailure
from spotgate.core.java_runtime import JavaResolutionError, resolve_java
from spotgate.core.spec import build_spec
from spotgate.core.task import SpotBugsTask, declared_inputs, declared_outputs, fingerprint
from spotgate.core.version import get_spotgate_version


logger = logging.getLogger("spotgate")


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean from the environment with a safe default."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes"}


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load_config(path: str) -> AnalysisConfig | None:
    try:
        return AnalysisConfig.from_file(path)
    except (OSError, ValueError, KeyError, yaml.YAMLError) as exc:
        print(f"Unable to load config {path}: {exc}", file=sys.stderr)
        return None


def run_command(args: argparse.Namespace) -> int:
    """Run SpotBugs for the configured classes and apply the failure policy."""
    config = _load_config(args.config)
    if config is None:
        return 2
    if args.ignore_failures:
        config.ignore_failures = True
    if args.timeout_ms is not None:
        config.worker.timeout_ms = args.timeout_ms

    try:
        java = resolve_java(args.java or config.worker.java_executable)
    except JavaResolutionError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    logger.debug("Using Java %s from %s (%s)", java.version, java.path, java.source)

    manager = ProcessWorkerManager(
        java_executable=java.path,
        main_class=config.worker.main_class,
        timeout_ms=config.worker.timeout_ms,
    )
    task = SpotBugsTask(config, manager, java.version)
    try:
        outcome = task.run()
    except AnalysisFailure as exc:
        print(str(exc), file=sys.stderr)
        if exc.__cause__ is not None:
            logger.debug("Caused by: %r", exc.__cause__)
        return 1
    print(f"SpotBugs complete: outcome={type(outcome).__name__.lower()}")
    return 0


def spec_command(args: argparse.Namespace) -> int:
    """Print the resolved analysis spec without launching a worker."""
    config = _load_config(args.config)
    if config is None:
        return 2
    try:
        spec = build_spec(config)
    except AnalysisFailure as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(json.dumps(spec.to_payload(), indent=2, sort_keys=True))
    return 0


def inputs_command(args: argparse.Namespace) -> int:
    """Print the declared inputs, outputs and fingerprint for host caching."""
    config = _load_config(args.config)
    if config is None:
        return 2
    payload = {
        "inputs": declared_inputs(config),
        "outputs": declared_outputs(config),
        "fingerprint": fingerprint(config),
    }
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint and command registration."""
    parser = argparse.ArgumentParser(prog="spotgate")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_spotgate_version()}")
    parser.add_argument("--debug", action="store_true", help="Log worker output and resolved arguments")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run SpotBugs and apply the failure policy")
    run_parser.add_argument("--config", required=True, help="Path to spotbugs.yaml")
    run_parser.add_argument("--java", default=None, help="Path to the java executable")
    run_parser.add_argument("--timeout-ms", type=int, default=None, help="Worker timeout in ms (0 disables)")
    run_parser.add_argument(
        "--ignore-failures",
        action="store_true",
        default=_env_bool("SPOTGATE_IGNORE_FAILURES", False),
        help="Report rule violations as a warning instead of failing",
    )
    run_parser.set_defaults(func=run_command)

    spec_parser = subparsers.add_parser("spec", help="Print the resolved analysis spec as JSON")
    spec_parser.add_argument("--config", required=True, help="Path to spotbugs.yaml")
    spec_parser.set_defaults(func=spec_command)

    inputs_parser = subparsers.add_parser("inputs", help="Print declared inputs, outputs and fingerprint")
    inputs_parser.add_argument("--config", required=True, help="Path to spotbugs.yaml")
    inputs_parser.set_defaults(func=inputs_command)

    args = parser.parse_args(argv)
    _configure_logging(args.debug)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
