import pytest

from spotgate.core.config import ReportSinks
from spotgate.core.errors import FindingsPresent, WorkerInfrastructureFailure
from spotgate.core.evaluator import Clean, Failed, Warned, evaluate, raise_for_outcome
from spotgate.core.models import AnalysisResult


def _reports(destination: str | None = "/tmp/report.xml") -> ReportSinks:
    reports = ReportSinks()
    if destination:
        reports.enable("xml", destination)
    return reports


@pytest.mark.parametrize("ignore_failures", [True, False])
def test_exception_always_fails(ignore_failures) -> None:
    cause = WorkerInfrastructureFailure("worker crashed")
    result = AnalysisResult(bug_count=2, exception=cause)

    outcome = evaluate(result, _reports(), ignore_failures)

    assert isinstance(outcome, Failed)
    assert outcome.cause is cause
    assert outcome.infrastructure is True
    assert "--debug" in outcome.reason


@pytest.mark.parametrize("ignore_failures", [True, False])
def test_engine_errors_always_fail(ignore_failures) -> None:
    outcome = evaluate(AnalysisResult(error_count=1), _reports(), ignore_failures)

    assert isinstance(outcome, Failed)
    assert outcome.cause is None
    assert outcome.infrastructure is True


def test_findings_are_warned_when_ignored() -> None:
    outcome = evaluate(AnalysisResult(bug_count=3), _reports("/tmp/report.xml"), True)

    assert isinstance(outcome, Warned)
    assert "3" in outcome.message
    assert "/tmp/report.xml" in outcome.message


def test_findings_fail_when_not_ignored() -> None:
    outcome = evaluate(AnalysisResult(bug_count=3), _reports("/tmp/report.xml"), False)

    assert isinstance(outcome, Failed)
    assert outcome.infrastructure is False
    assert "3" in outcome.reason
    assert "/tmp/report.xml" in outcome.reason
    assert outcome.reason == evaluate(AnalysisResult(bug_count=3), _reports("/tmp/report.xml"), True).message


def test_findings_message_without_enabled_report() -> None:
    outcome = evaluate(AnalysisResult(bug_count=1), _reports(None), False)

    assert isinstance(outcome, Failed)
    assert "See the report" not in outcome.reason


def test_clean_result() -> None:
    assert evaluate(AnalysisResult(), _reports(), False) == Clean()


def test_evaluate_is_repeatable() -> None:
    result = AnalysisResult(bug_count=5)
    reports = _reports()

    assert evaluate(result, reports, True) == evaluate(result, reports, True)


def test_raise_for_outcome_maps_failure_types() -> None:
    cause = OSError("pipe closed")

    with pytest.raises(WorkerInfrastructureFailure) as infra:
        raise_for_outcome(Failed(reason="engine", cause=cause, infrastructure=True))
    assert infra.value.__cause__ is cause

    with pytest.raises(FindingsPresent):
        raise_for_outcome(Failed(reason="findings"))

    raise_for_outcome(Warned(message="ignored"))
    raise_for_outcome(Clean())
