from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
import threading
import time

from collections import deque
from pathlib import Path
from typing import IO, Sequence

from spotgate.core.config import DEFAULT_MAIN_CLASS
from spotgate.core.errors import AnalysisInterrupted, WorkerInfrastructureFailure
from spotgate.core.models import AnalysisResult, AnalysisSpec


logger = logging.getLogger(__name__)
worker_output = logging.getLogger("spotgate.worker")


TAIL_CHARS = 2000


class ProcessWorkerManager:
    """Run the SpotBugs worker as a child JVM and supervise it to completion.

    The spec travels as a JSON request on stdin and the worker writes its
    counts to the ``result_path`` named in that request, so stdout and stderr
    stay purely diagnostic and are only surfaced at DEBUG.
    """
    def __init__(
        self,
        java_executable: str,
        main_class: str = DEFAULT_MAIN_CLASS,
        timeout_ms: int = 0,
        poll_interval: float = 0.1,
        terminate_grace: float = 5.0,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.java_executable = java_executable
        self.main_class = main_class
        self.timeout_ms = timeout_ms
        self.poll_interval = poll_interval
        self.terminate_grace = terminate_grace
        self.cancel_event = cancel_event

    def build_command(self, worker_classpath: Sequence[str], spec: AnalysisSpec) -> list[str]:
        command = [self.java_executable]
        command.extend(spec.jvm_args)
        command.append(f"-Xmx{spec.max_heap_size}")
        command.extend(f"-D{key}={value}" for key, value in spec.system_properties)
        command += ["-cp", os.pathsep.join(str(entry) for entry in worker_classpath), self.main_class]
        return command

    def run_worker(
        self,
        working_dir: str,
        worker_classpath: Sequence[str],
        spec: AnalysisSpec,
    ) -> AnalysisResult:
        """Launch one worker process and translate its outcome into a result.

        Notes:
            Launch errors, crashes, timeouts and unreadable results are returned
            as ``AnalysisResult.exception``; only cancellation raises. The child
            is always reaped before this method returns or raises.
        """
        start = time.time()
        try:
            for report in spec.reports:
                Path(report.destination).parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            return _failed(f"Unable to create report directory: {exc}", start, cause=exc)

        with tempfile.TemporaryDirectory(prefix="spotgate-") as scratch:
            result_path = Path(scratch) / "result.json"
            payload = {**spec.to_payload(), "result_path": str(result_path)}
            command = self.build_command(worker_classpath, spec)
            env = dict(os.environ)
            env.pop("CLASSPATH", None)

            if spec.debug:
                logger.debug("Starting SpotBugs worker: %s", " ".join(command))
            try:
                proc = subprocess.Popen(
                    command,
                    cwd=working_dir,
                    env=env,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                )
            except OSError as exc:
                return _failed(f"Unable to launch SpotBugs worker: {exc}", start, cause=exc)

            stdout = _StreamPump(proc.stdout, "stdout")
            stderr = _StreamPump(proc.stderr, "stderr")
            feeder = threading.Thread(
                target=_feed_request,
                args=(proc.stdin, json.dumps(payload)),
                name="spotgate-worker-stdin",
                daemon=True,
            )
            timed_out = False
            try:
                stdout.start()
                stderr.start()
                feeder.start()
                returncode = self._wait(proc)
            except subprocess.TimeoutExpired:
                timed_out = True
                self._terminate(proc)
                returncode = proc.returncode
            except KeyboardInterrupt as exc:
                self._terminate(proc)
                raise AnalysisInterrupted("SpotBugs run was interrupted; the worker was terminated") from exc
            except AnalysisInterrupted:
                self._terminate(proc)
                raise
            finally:
                if proc.poll() is None:
                    self._terminate(proc)
                feeder.join(timeout=self.terminate_grace)
                stdout.join(self.terminate_grace)
                stderr.join(self.terminate_grace)

            tails = {"stdout_tail": stdout.tail(), "stderr_tail": stderr.tail()}
            if timed_out:
                return _failed(
                    f"SpotBugs worker timed out after {self.timeout_ms} ms",
                    start,
                    **tails,
                )
            return _read_result(result_path, returncode, start, tails)

    def _wait(self, proc: subprocess.Popen) -> int:
        deadline = None
        if self.timeout_ms > 0:
            deadline = time.monotonic() + self.timeout_ms / 1000
        while True:
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise AnalysisInterrupted("SpotBugs run was cancelled; the worker was terminated")
            if deadline is not None and time.monotonic() >= deadline:
                raise subprocess.TimeoutExpired(proc.args, self.timeout_ms / 1000)
            try:
                return proc.wait(timeout=self.poll_interval)
            except subprocess.TimeoutExpired:
                continue

    def _terminate(self, proc: subprocess.Popen) -> None:
        if proc.poll() is not None:
            return
        logger.debug("Terminating SpotBugs worker pid=%s", proc.pid)
        proc.terminate()
        try:
            proc.wait(timeout=self.terminate_grace)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()


class _StreamPump(threading.Thread):
    """Drain one worker stream, logging each line at DEBUG."""
    def __init__(self, stream: IO[str] | None, name: str) -> None:
        super().__init__(name=f"spotgate-worker-{name}", daemon=True)
        self.stream = stream
        self.label = name
        self.lines: deque[str] = deque(maxlen=200)

    def run(self) -> None:
        if self.stream is None:
            return
        with self.stream:
            for line in self.stream:
                self.lines.append(line)
                worker_output.debug("[%s] %s", self.label, line.rstrip("\n"))

    def tail(self) -> str:
        return "".join(self.lines)[-TAIL_CHARS:]


def _feed_request(stdin: IO[str] | None, request: str) -> None:
    if stdin is None:
        return
    try:
        stdin.write(request)
        stdin.flush()
    except OSError as exc:
        # The worker may exit before reading its request; the exit code tells the story.
        logger.debug("Unable to write SpotBugs worker request: %s", exc)
    finally:
        try:
            stdin.close()
        except OSError:
            pass


def _read_result(result_path: Path, returncode: int, start: float, tails: dict) -> AnalysisResult:
    # A non-zero exit invalidates any result the worker wrote before dying.
    if returncode != 0:
        return _failed(f"SpotBugs worker exited with code {returncode}", start, **tails)
    if not result_path.exists():
        return _failed("SpotBugs worker exited without writing a result", start, **tails)

    try:
        raw = json.loads(result_path.read_text(encoding="utf-8"))
        bug_count = int(raw.get("bug_count", 0))
        error_count = int(raw.get("error_count", 0))
        missing_class_count = int(raw.get("missing_class_count", 0))
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        return _failed(f"Invalid SpotBugs worker result: {exc}", start, cause=exc, **tails)

    if min(bug_count, error_count, missing_class_count) < 0:
        return _failed(
            "Invalid SpotBugs worker result: negative count "
            f"(bug_count={bug_count}, error_count={error_count}, missing_class_count={missing_class_count})",
            start,
            **tails,
        )

    exception = None
    if raw.get("exception"):
        exception = WorkerInfrastructureFailure(str(raw["exception"]))
    return AnalysisResult(
        bug_count=bug_count,
        error_count=error_count,
        missing_class_count=missing_class_count,
        exception=exception,
        duration_ms=int((time.time() - start) * 1000),
        **tails,
    )


def _failed(message: str, start: float, cause: BaseException | None = None, **tails: str) -> AnalysisResult:
    exception = WorkerInfrastructureFailure(message)
    exception.__cause__ = cause
    return AnalysisResult(
        exception=exception,
        duration_ms=int((time.time() - start) * 1000),
        **tails,
    )
