from __future__ import annotations


class AnalysisFailure(RuntimeError):
    """Build-failing outcome of a SpotBugs task.

    Every failure the pipeline surfaces to its caller is an instance of this
    type; the underlying error, when there is one, is chained as ``__cause__``.
    """


class ConfigurationError(AnalysisFailure):
    """Raised when a configuration value cannot be turned into engine arguments."""


class ClasspathIncompatibility(AnalysisFailure):
    """Raised when the engine classpath cannot run on the current Java runtime."""

    def __init__(self, artifacts: list[str], required_version: str, actual_version: str) -> None:
        self.artifacts = list(artifacts)
        self.required_version = required_version
        self.actual_version = actual_version
        names = ", ".join(self.artifacts)
        super().__init__(
            f"{names} requires Java {required_version} or newer, "
            f"but the current Java runtime is {actual_version}. "
            "Run the build with a newer JDK or pin an older SpotBugs version."
        )


class ResourceResolutionError(AnalysisFailure):
    """Raised when a declared filter resource cannot be materialized to a file."""


class WorkerInfrastructureFailure(AnalysisFailure):
    """The worker could not complete the analysis (crash, launch or I/O failure)."""


class FindingsPresent(AnalysisFailure):
    """The analysis completed and reported rule violations."""


class AnalysisInterrupted(AnalysisFailure):
    """The run was cancelled; the worker was terminated before it finished."""
