from __future__ import annotations

import hashlib
import json
import logging
import os

from pathlib import Path

from spotgate.core.classpath import ClasspathValidator
from spotgate.core.config import AnalysisConfig, FilterResource
from spotgate.core.evaluator import Clean, Outcome, Warned, evaluate, raise_for_outcome
from spotgate.core.java_runtime import JavaVersion
from spotgate.core.spec import build_spec
from spotgate.ports.worker import WorkerManager


logger = logging.getLogger(__name__)


class SpotBugsTask:
    """Validate, build, run and evaluate one SpotBugs analysis.

    Each ``run`` builds a fresh spec and launches exactly one worker; nothing
    is carried between runs.
    """
    def __init__(
        self,
        config: AnalysisConfig,
        worker_manager: WorkerManager,
        platform_version: JavaVersion,
        filter_dir: str | None = None,
    ) -> None:
        self.config = config
        self.worker_manager = worker_manager
        self.platform_version = platform_version
        self.filter_dir = filter_dir

    def run(self) -> Outcome:
        """Execute the pipeline and apply the failure policy.

        Returns:
            Outcome: ``Clean`` or ``Warned``; a ``Failed`` outcome is raised.

        Raises:
            AnalysisFailure: Classpath incompatibility, unresolvable filters,
                infrastructure failures, findings (unless ignored) and
                interruption all surface through this type.
        """
        if not self.config.classes:
            logger.info("No classes to analyze; skipping SpotBugs")
            return Clean()

        ClasspathValidator(self.platform_version).validate(
            Path(entry).name for entry in self.config.engine_classpath
        )
        spec = build_spec(self.config, filter_dir=self.filter_dir)
        logger.info("Running SpotBugs on %d input(s)", len(spec.classes))

        result = self.worker_manager.run_worker(spec.working_dir, self.worker_classpath(), spec)
        logger.debug(
            "SpotBugs finished: bugs=%d errors=%d missing_classes=%d duration_ms=%d",
            result.bug_count,
            result.error_count,
            result.missing_class_count,
            result.duration_ms,
        )

        reports = self.config.reports.resolved(spec.working_dir)
        outcome = evaluate(result, reports, self.config.ignore_failures)
        if isinstance(outcome, Warned):
            logger.warning("%s", outcome.message)
        raise_for_outcome(outcome)
        return outcome

    def worker_classpath(self) -> list[str]:
        base_dir = os.path.abspath(self.config.project_dir)
        entries = []
        for entry in self.config.engine_classpath:
            absolute = os.path.normpath(os.path.join(base_dir, entry))
            if absolute not in entries:
                entries.append(absolute)
        return entries

    def declared_inputs(self) -> dict:
        return declared_inputs(self.config)

    def declared_outputs(self) -> list[str]:
        return declared_outputs(self.config)

    def fingerprint(self) -> str:
        return fingerprint(self.config)


def declared_inputs(config: AnalysisConfig) -> dict:
    """Inputs the host build uses to decide whether the task is up to date.

    Paths are reported relative to the project directory and filter
    resources by content, so the mapping is stable across checkouts.
    """
    base_dir = os.path.abspath(config.project_dir)
    return {
        "classes": _relative_set(config.classes, base_dir),
        "classpath": _relative_list(config.classpath, base_dir),
        "engine_classpath": _relative_list(config.engine_classpath, base_dir),
        "plugin_classpath": _relative_list(config.plugin_classpath, base_dir),
        "sources": _relative_set(list(config.source_dirs) + list(config.source_files), base_dir),
        "effort": config.effort,
        "report_level": config.report_level,
        "max_heap_size": config.max_heap_size,
        "show_progress": config.show_progress,
        "ignore_failures": config.ignore_failures,
        "visitors": list(config.visitors),
        "omit_visitors": list(config.omit_visitors),
        "include_filter": _filter_digest(config.include_filter, base_dir),
        "exclude_filter": _filter_digest(config.exclude_filter, base_dir),
        "exclude_bugs_filter": _filter_digest(config.exclude_bugs_filter, base_dir),
        "extra_args": list(config.extra_args),
        "jvm_args": list(config.jvm_args),
        "system_properties": {str(k): config.system_properties[k] for k in sorted(config.system_properties)},
    }


def declared_outputs(config: AnalysisConfig) -> list[str]:
    """Enabled report destinations, resolved against the project directory."""
    base_dir = os.path.abspath(config.project_dir)
    return [
        os.path.normpath(os.path.join(base_dir, str(sink.destination)))
        for sink in config.reports.enabled()
    ]


def fingerprint(config: AnalysisConfig) -> str:
    payload = json.dumps(
        {"inputs": declared_inputs(config), "outputs": declared_outputs(config)},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _relative(path: str, base_dir: str) -> str:
    absolute = os.path.normpath(os.path.join(base_dir, path))
    try:
        return Path(absolute).relative_to(base_dir).as_posix()
    except ValueError:
        return Path(absolute).as_posix()


def _relative_list(paths: list[str], base_dir: str) -> list[str]:
    result: list[str] = []
    for path in paths:
        value = _relative(path, base_dir)
        if value not in result:
            result.append(value)
    return result


def _relative_set(paths: list[str], base_dir: str) -> list[str]:
    return sorted({_relative(path, base_dir) for path in paths})


def _filter_digest(resource: FilterResource | None, base_dir: str) -> str | None:
    if resource is None:
        return None
    if resource.text is not None:
        payload = resource.text.encode("utf-8")
    else:
        path = Path(base_dir) / str(resource.path)
        try:
            payload = path.read_bytes()
        except OSError:
            return f"missing:{_relative(str(resource.path), base_dir)}"
    return hashlib.sha256(payload).hexdigest()
