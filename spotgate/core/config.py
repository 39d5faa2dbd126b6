from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


DEFAULT_MAIN_CLASS = "com.github.spotbugs.worker.SpotBugsWorker"
REPORT_SINK_NAMES = ("xml", "html", "text", "sarif", "emacs", "xdocs")


@dataclass
class FilterResource:
    """Filter definition backed either by a file or by inline text.

    The resource stays lazy until the spec builder materializes it to a path.
    """
    path: str | None = None
    text: str | None = None

    @staticmethod
    def from_file(path: str) -> "FilterResource":
        return FilterResource(path=str(path))

    @staticmethod
    def from_text(text: str) -> "FilterResource":
        return FilterResource(text=text)

    @staticmethod
    def from_value(value: Any) -> "FilterResource | None":
        """Accept a bare path string or a ``{path: ...}``/``{text: ...}`` mapping."""
        if value is None:
            return None
        if isinstance(value, FilterResource):
            return value
        if isinstance(value, str):
            return FilterResource.from_file(value)
        if isinstance(value, dict):
            if value.get("text") is not None:
                return FilterResource.from_text(str(value["text"]))
            if value.get("path") is not None:
                return FilterResource.from_file(str(value["path"]))
        raise ValueError(f"Unsupported filter definition: {value!r}")

    def snapshot(self) -> dict:
        return {"path": self.path, "text": self.text}


@dataclass
class ReportSink:
    name: str
    enabled: bool = False
    destination: str | None = None
    stylesheet: str | None = None


@dataclass
class ReportSinks:
    """Ordered, named report outputs; any number of them may be enabled."""
    sinks: dict[str, ReportSink] = field(
        default_factory=lambda: {name: ReportSink(name=name) for name in REPORT_SINK_NAMES}
    )

    def __getitem__(self, name: str) -> ReportSink:
        if name not in self.sinks:
            raise KeyError(f"Unknown report sink: {name}")
        return self.sinks[name]

    def enable(self, name: str, destination: str, stylesheet: str | None = None) -> ReportSink:
        sink = self[name]
        sink.enabled = True
        sink.destination = str(destination)
        sink.stylesheet = stylesheet
        return sink

    def enabled(self) -> list[ReportSink]:
        return [sink for sink in self.sinks.values() if sink.enabled and sink.destination]

    def first_enabled(self) -> ReportSink | None:
        enabled = self.enabled()
        return enabled[0] if enabled else None

    def resolved(self, base_dir: str) -> "ReportSinks":
        """Copy with destinations made absolute against ``base_dir``."""
        sinks = {}
        for name, sink in self.sinks.items():
            destination = sink.destination
            if destination is not None:
                destination = os.path.normpath(os.path.join(base_dir, str(destination)))
            sinks[name] = ReportSink(name, sink.enabled, destination, sink.stylesheet)
        return ReportSinks(sinks=sinks)

    @staticmethod
    def from_dict(data: dict | None) -> "ReportSinks":
        reports = ReportSinks()
        if data is None:
            return reports
        if not isinstance(data, dict):
            raise ValueError(f"Report definitions must be a mapping, got {data!r}")
        for name, value in data.items():
            if value is None or value is False:
                continue
            if isinstance(value, str):
                reports.enable(name, value)
                continue
            if not isinstance(value, dict):
                raise ValueError(f"Unsupported report definition for {name}: {value!r}")
            sink = reports[name]
            sink.destination = value.get("destination")
            sink.stylesheet = value.get("stylesheet")
            sink.enabled = bool(value.get("enabled", sink.destination is not None))
        return reports

    def snapshot(self) -> dict:
        return {
            name: {
                "enabled": sink.enabled,
                "destination": sink.destination,
                "stylesheet": sink.stylesheet,
            }
            for name, sink in self.sinks.items()
        }


@dataclass
class WorkerOptions:
    main_class: str = DEFAULT_MAIN_CLASS
    java_executable: str | None = None
    timeout_ms: int = 0


@dataclass
class AnalysisConfig:
    """Every user-settable knob of a SpotBugs task.

    No validation happens here; the spec builder rejects values it cannot
    translate. Optional tunables stay ``None`` until the builder substitutes
    defaults.
    """
    classes: list[str] = field(default_factory=list)
    classpath: list[str] = field(default_factory=list)
    engine_classpath: list[str] = field(default_factory=list)
    plugin_classpath: list[str] = field(default_factory=list)
    source_dirs: list[str] = field(default_factory=list)
    source_files: list[str] = field(default_factory=list)
    effort: str | None = None
    report_level: str | None = None
    max_heap_size: str | None = None
    show_progress: bool = False
    ignore_failures: bool = False
    visitors: list[str] = field(default_factory=list)
    omit_visitors: list[str] = field(default_factory=list)
    include_filter: FilterResource | None = None
    exclude_filter: FilterResource | None = None
    exclude_bugs_filter: FilterResource | None = None
    extra_args: list[str] = field(default_factory=list)
    jvm_args: list[str] = field(default_factory=list)
    system_properties: dict[str, Any] = field(default_factory=dict)
    reports: ReportSinks = field(default_factory=ReportSinks)
    project_dir: str = "."
    worker: WorkerOptions = field(default_factory=WorkerOptions)

    def add_extra_args(self, *arguments: str) -> "AnalysisConfig":
        self.extra_args.extend(arguments)
        return self

    def add_jvm_args(self, *arguments: str) -> "AnalysisConfig":
        self.jvm_args.extend(arguments)
        return self

    def set_system_property(self, name: str, value: Any) -> "AnalysisConfig":
        self.system_properties[name] = value
        return self

    def update_system_properties(self, values: dict[str, Any]) -> "AnalysisConfig":
        self.system_properties.update(values)
        return self

    @staticmethod
    def from_file(path: str) -> "AnalysisConfig":
        ext = Path(path).suffix.lower()
        with open(path, "r", encoding="utf-8") as handle:
            if ext in {".yaml", ".yml"}:
                data = yaml.safe_load(handle) or {}
            elif ext == ".json":
                data = json.load(handle)
            else:
                raise ValueError(f"Unsupported config file extension: {ext}")
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level")

        project_dir = data.get("project_dir")
        if project_dir is None:
            project_dir = str(Path(path).resolve().parent)
        return AnalysisConfig.from_dict(data, project_dir=project_dir)

    @staticmethod
    def from_dict(data: dict, project_dir: str = ".") -> "AnalysisConfig":
        if not isinstance(data, dict):
            raise ValueError(f"Config must be a mapping, got {type(data).__name__}")
        worker = data.get("worker") or {}
        if not isinstance(worker, dict):
            raise ValueError(f"Unsupported worker definition: {worker!r}")
        return AnalysisConfig(
            classes=[str(p) for p in data.get("classes", [])],
            classpath=[str(p) for p in data.get("classpath", [])],
            engine_classpath=[str(p) for p in data.get("engine_classpath", [])],
            plugin_classpath=[str(p) for p in data.get("plugin_classpath", [])],
            source_dirs=[str(p) for p in data.get("source_dirs", [])],
            source_files=[str(p) for p in data.get("source_files", [])],
            effort=data.get("effort"),
            report_level=data.get("report_level"),
            max_heap_size=data.get("max_heap_size"),
            show_progress=bool(data.get("show_progress", False)),
            ignore_failures=bool(data.get("ignore_failures", False)),
            visitors=[str(v) for v in data.get("visitors", [])],
            omit_visitors=[str(v) for v in data.get("omit_visitors", [])],
            include_filter=FilterResource.from_value(data.get("include_filter")),
            exclude_filter=FilterResource.from_value(data.get("exclude_filter")),
            exclude_bugs_filter=FilterResource.from_value(data.get("exclude_bugs_filter")),
            extra_args=[str(a) for a in data.get("extra_args", [])],
            jvm_args=[str(a) for a in data.get("jvm_args", [])],
            system_properties=dict(data.get("system_properties") or {}),
            reports=ReportSinks.from_dict(data.get("reports")),
            project_dir=str(project_dir),
            worker=WorkerOptions(
                main_class=str(worker.get("main_class", DEFAULT_MAIN_CLASS)),
                java_executable=worker.get("java_executable"),
                timeout_ms=int(worker.get("timeout_ms", 0)),
            ),
        )

    def snapshot(self) -> dict:
        return {
            "classes": self.classes,
            "classpath": self.classpath,
            "engine_classpath": self.engine_classpath,
            "plugin_classpath": self.plugin_classpath,
            "source_dirs": self.source_dirs,
            "source_files": self.source_files,
            "effort": self.effort,
            "report_level": self.report_level,
            "max_heap_size": self.max_heap_size,
            "show_progress": self.show_progress,
            "ignore_failures": self.ignore_failures,
            "visitors": self.visitors,
            "omit_visitors": self.omit_visitors,
            "include_filter": self.include_filter.snapshot() if self.include_filter else None,
            "exclude_filter": self.exclude_filter.snapshot() if self.exclude_filter else None,
            "exclude_bugs_filter": self.exclude_bugs_filter.snapshot() if self.exclude_bugs_filter else None,
            "extra_args": self.extra_args,
            "jvm_args": self.jvm_args,
            "system_properties": self.system_properties,
            "reports": self.reports.snapshot(),
            "project_dir": self.project_dir,
            "worker": {
                "main_class": self.worker.main_class,
                "java_executable": self.worker.java_executable,
                "timeout_ms": self.worker.timeout_ms,
            },
        }
