from __future__ import annotations

from typing import Protocol, Sequence

from spotgate.core.models import AnalysisResult, AnalysisSpec


class WorkerManager(Protocol):
    """Runs one isolated analysis worker per call."""
    def run_worker(
        self,
        working_dir: str,
        worker_classpath: Sequence[str],
        spec: AnalysisSpec,
    ) -> AnalysisResult:
        """Launch the worker, wait for it and return its result.

        Args:
            working_dir (str): Working directory of the worker process.
            worker_classpath (Sequence[str]): Engine jars and their dependencies.
            spec (AnalysisSpec): Resolved analysis parameters.

        Returns:
            AnalysisResult: Counts, or the exception that kept the worker from
                completing.

        Raises:
            AnalysisInterrupted: When the run is cancelled; the worker is
                terminated before this propagates.
        """
        ...
