from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReportTarget:
    """Enabled report sink resolved to an absolute destination."""
    name: str
    destination: str
    stylesheet: str | None = None


@dataclass(frozen=True)
class AnalysisSpec:
    """Fully-resolved worker contract produced once per run."""
    arguments: tuple[str, ...]
    classes: tuple[str, ...]
    jvm_args: tuple[str, ...]
    max_heap_size: str
    system_properties: tuple[tuple[str, str], ...]
    working_dir: str
    debug: bool
    reports: tuple[ReportTarget, ...] = ()

    def to_payload(self) -> dict:
        """Serialize the spec for the worker request and for JSON output."""
        return {
            "arguments": list(self.arguments),
            "classes": list(self.classes),
            "jvm_args": list(self.jvm_args),
            "max_heap_size": self.max_heap_size,
            "system_properties": dict(self.system_properties),
            "working_dir": self.working_dir,
            "debug": self.debug,
            "reports": [
                {"name": report.name, "destination": report.destination, "stylesheet": report.stylesheet}
                for report in self.reports
            ],
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of exactly one worker invocation."""
    bug_count: int = 0
    error_count: int = 0
    missing_class_count: int = 0
    exception: BaseException | None = None
    stdout_tail: str = ""
    stderr_tail: str = ""
    duration_ms: int = 0
