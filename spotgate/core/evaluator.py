from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from spotgate.core.config import ReportSinks
from spotgate.core.errors import AnalysisFailure, FindingsPresent, WorkerInfrastructureFailure
from spotgate.core.models import AnalysisResult


ENGINE_ERROR_MESSAGE = "SpotBugs encountered an error."
RERUN_HINT = "Run with --debug to get more information."


@dataclass(frozen=True)
class Clean:
    pass


@dataclass(frozen=True)
class Warned:
    message: str


@dataclass(frozen=True)
class Failed:
    reason: str
    cause: BaseException | None = None
    infrastructure: bool = False


Outcome = Union[Clean, Warned, Failed]


def evaluate(result: AnalysisResult, reports: ReportSinks, ignore_failures: bool) -> Outcome:
    """Apply the pass/warn/fail policy to a worker result.

    Args:
        result (AnalysisResult): Result of the worker invocation.
        reports (ReportSinks): Configured report sinks; the first enabled one
            is linked from the findings message.
        ignore_failures (bool): Downgrade findings to a warning.

    Returns:
        Outcome: ``Clean``, ``Warned`` or ``Failed``.

    Notes:
        ``ignore_failures`` only governs findings. Worker exceptions and
        engine errors mean the analysis cannot be trusted and always fail.
    """
    if result.exception is not None:
        return Failed(
            reason=f"{ENGINE_ERROR_MESSAGE} {RERUN_HINT}",
            cause=result.exception,
            infrastructure=True,
        )

    if result.error_count > 0:
        return Failed(
            reason=f"{ENGINE_ERROR_MESSAGE} {RERUN_HINT} ({result.error_count} analysis error(s))",
            infrastructure=True,
        )

    if result.bug_count > 0:
        message = findings_message(result.bug_count, reports)
        if ignore_failures:
            return Warned(message=message)
        return Failed(reason=message)

    return Clean()


def findings_message(bug_count: int, reports: ReportSinks) -> str:
    message = f"SpotBugs reported {bug_count} rule violation(s)."
    report = reports.first_enabled()
    if report is not None and report.destination:
        message += f" See the report at: {report_url(report.destination)}"
    return message


def report_url(destination: str) -> str:
    path = Path(destination)
    if not path.is_absolute():
        path = Path.cwd() / path
    return path.as_uri()


def raise_for_outcome(outcome: Outcome) -> None:
    """Raise the failure matching a ``Failed`` outcome; other outcomes pass."""
    if not isinstance(outcome, Failed):
        return
    error: AnalysisFailure
    if outcome.infrastructure:
        error = WorkerInfrastructureFailure(outcome.reason)
    else:
        error = FindingsPresent(outcome.reason)
    if outcome.cause is not None:
        raise error from outcome.cause
    raise error
