from __future__ import annotations

import hashlib
import logging
import os

from pathlib import Path
from typing import Any, Iterable

from spotgate.core.config import AnalysisConfig, FilterResource, ReportSink
from spotgate.core.errors import ConfigurationError, ResourceResolutionError
from spotgate.core.models import AnalysisSpec, ReportTarget


logger = logging.getLogger(__name__)

EFFORT_LEVELS = ("min", "default", "max")
REPORT_LEVELS = ("low", "medium", "high")

DEFAULT_EFFORT = "default"
DEFAULT_REPORT_LEVEL = "medium"
DEFAULT_MAX_HEAP_SIZE = "512m"

_REPORT_FLAGS = {
    "xml": "-xml:withMessages",
    "html": "-html",
    "text": "-sortByClass",
    "sarif": "-sarif",
    "emacs": "-emacs",
    "xdocs": "-xdocs",
}


def build_spec(
    config: AnalysisConfig,
    debug: bool | None = None,
    filter_dir: str | None = None,
) -> AnalysisSpec:
    """Translate a configuration into the worker's immutable contract.

    Args:
        config (AnalysisConfig): Task configuration; read, never mutated.
        debug (bool | None): Overrides the debug flag; by default it follows
            whether the ``spotgate`` logger is enabled for DEBUG.
        filter_dir (str | None): Where inline filter text is written;
            defaults to ``<project_dir>/build/spotgate``.

    Returns:
        AnalysisSpec: Spec with defaults substituted and paths made absolute.

    Raises:
        ConfigurationError: For unknown effort/report levels, report sinks or
            non-scalar system properties.
        ResourceResolutionError: When a filter resource cannot be materialized.

    Notes:
        Identical configurations (including filter contents) always produce
        equal specs; inline filters land in content-addressed files.
    """
    base_dir = _absolute(config.project_dir, os.getcwd())
    if debug is None:
        debug = logging.getLogger("spotgate").isEnabledFor(logging.DEBUG)
    materialize_dir = _absolute(filter_dir, base_dir) if filter_dir else os.path.join(base_dir, "build", "spotgate")

    effort = config.effort or DEFAULT_EFFORT
    if effort not in EFFORT_LEVELS:
        raise ConfigurationError(f"Unsupported effort {effort!r}; expected one of {', '.join(EFFORT_LEVELS)}")
    report_level = config.report_level or DEFAULT_REPORT_LEVEL
    if report_level not in REPORT_LEVELS:
        raise ConfigurationError(
            f"Unsupported report level {report_level!r}; expected one of {', '.join(REPORT_LEVELS)}"
        )

    classes = tuple(sorted(_absolute_paths(config.classes, base_dir)))
    plugins = _absolute_paths(config.plugin_classpath, base_dir)
    sources = _absolute_paths(list(config.source_dirs) + list(config.source_files), base_dir)
    aux_classpath = _absolute_paths(config.classpath, base_dir)
    omitted = _unique(config.omit_visitors)
    visitors = [name for name in _unique(config.visitors) if name not in omitted]

    arguments: list[str] = []
    if plugins:
        arguments += ["-pluginList", os.pathsep.join(plugins)]
    arguments.append("-timestampNow")
    if sources:
        arguments += ["-sourcepath", os.pathsep.join(sources)]
    if config.show_progress:
        arguments.append("-progress")
    if aux_classpath:
        arguments += ["-auxclasspath", os.pathsep.join(aux_classpath)]
    arguments.append(f"-effort:{effort}")
    arguments.append(f"-{report_level}")
    if visitors:
        arguments += ["-visitors", ",".join(visitors)]
    if omitted:
        arguments += ["-omitVisitors", ",".join(omitted)]

    for flag, kind, resource in (
        ("-exclude", "exclude", config.exclude_filter),
        ("-include", "include", config.include_filter),
        ("-excludeBugs", "exclude-bugs", config.exclude_bugs_filter),
    ):
        if resource is None:
            continue
        arguments += [flag, materialize_filter(resource, kind, base_dir, materialize_dir)]

    reports = tuple(_report_target(sink, base_dir) for sink in config.reports.enabled())
    for report in reports:
        arguments.append(_report_argument(report))

    arguments.extend(str(arg) for arg in config.extra_args)
    arguments.extend(classes)

    spec = AnalysisSpec(
        arguments=tuple(arguments),
        classes=classes,
        jvm_args=tuple(str(arg) for arg in config.jvm_args),
        max_heap_size=config.max_heap_size or DEFAULT_MAX_HEAP_SIZE,
        system_properties=_system_properties(config.system_properties),
        working_dir=base_dir,
        debug=bool(debug),
        reports=reports,
    )
    logger.debug("Resolved SpotBugs arguments: %s", " ".join(spec.arguments))
    return spec


def materialize_filter(resource: FilterResource, kind: str, base_dir: str, filter_dir: str) -> str:
    """Return an absolute file path holding the filter definition."""
    if resource.text is not None:
        payload = resource.text.encode("utf-8")
        digest = hashlib.sha256(payload).hexdigest()[:16]
        out_path = Path(filter_dir) / f"{kind}-{digest}.xml"
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            if not out_path.exists() or out_path.read_bytes() != payload:
                out_path.write_bytes(payload)
        except OSError as exc:
            raise ResourceResolutionError(f"Unable to write {kind} filter to {out_path}: {exc}") from exc
        return str(out_path)

    if resource.path is None:
        raise ResourceResolutionError(f"The {kind} filter declares neither a path nor text")

    path = Path(_absolute(resource.path, base_dir))
    try:
        with path.open("rb") as handle:
            handle.read(1)
    except OSError as exc:
        raise ResourceResolutionError(f"Unable to read {kind} filter {path}: {exc}") from exc
    return str(path)


def _report_target(sink: ReportSink, base_dir: str) -> ReportTarget:
    if sink.name not in _REPORT_FLAGS:
        raise ConfigurationError(f"Unsupported report sink: {sink.name}")
    stylesheet = sink.stylesheet if sink.name == "html" else None
    return ReportTarget(
        name=sink.name,
        destination=_absolute(str(sink.destination), base_dir),
        stylesheet=stylesheet,
    )


def _report_argument(report: ReportTarget) -> str:
    flag = _REPORT_FLAGS[report.name]
    if report.stylesheet:
        flag = f"{flag}:{report.stylesheet}"
    return f"{flag}={report.destination}"


def _system_properties(values: dict[str, Any]) -> tuple[tuple[str, str], ...]:
    resolved = []
    for key in sorted(values):
        value = values[key]
        if isinstance(value, bool):
            text = "true" if value else "false"
        elif isinstance(value, (str, int, float)):
            text = str(value)
        elif value is None:
            text = ""
        else:
            raise ConfigurationError(f"System property {key!r} must be a scalar, got {type(value).__name__}")
        resolved.append((str(key), text))
    return tuple(resolved)


def _absolute(path: str, base_dir: str) -> str:
    return os.path.normpath(os.path.join(base_dir, os.path.expanduser(str(path))))


def _absolute_paths(paths: Iterable[str], base_dir: str) -> list[str]:
    return _unique(_absolute(path, base_dir) for path in paths)


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result
