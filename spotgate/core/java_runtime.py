from __future__ import annotations

import os
import re
import shutil
import subprocess
import sys

from dataclasses import dataclass
from pathlib import Path


_VERSION_LINE = re.compile(r'version\s+"([^"]+)"')


class JavaResolutionError(RuntimeError):
    """Raised when no runnable Java executable can be found."""


@dataclass(frozen=True, order=True)
class JavaVersion:
    """Java feature release, comparable across legacy and modern spellings."""
    feature: int
    interim: int = 0
    update: int = 0

    @staticmethod
    def parse(value: str) -> "JavaVersion":
        """Parse ``1.8.0_292``, ``11``, ``17.0.2`` or ``21-ea`` style strings.

        Raises:
            ValueError: When no leading numeric component is present.
        """
        text = str(value).strip()
        numbers = [int(part) for part in re.findall(r"\d+", text)]
        if not numbers or not text[:1].isdigit():
            raise ValueError(f"Unrecognized Java version: {value!r}")
        if numbers[0] == 1 and len(numbers) > 1:
            numbers = numbers[1:]
        numbers = (numbers + [0, 0, 0])[:3]
        return JavaVersion(feature=numbers[0], interim=numbers[1], update=numbers[2])

    def __str__(self) -> str:
        if self.feature <= 8:
            return f"1.{self.feature}"
        return str(self.feature)


@dataclass(frozen=True)
class JavaRuntime:
    path: str
    source: str
    version: JavaVersion


def resolve_java(explicit_path: str | None = None) -> JavaRuntime:
    """Resolve the Java executable used to launch the analysis worker.

    Resolution order:
    1. Explicit path (CLI flag or config)
    2. ``$JAVA_HOME/bin/java``
    3. ``java`` on ``PATH``
    """
    binary_name = _binary_name()
    searched: list[str] = []

    if explicit_path:
        path = Path(explicit_path)
        searched.append(str(path))
        if _is_runnable(path):
            resolved = str(path.resolve())
            return JavaRuntime(path=resolved, source="explicit", version=detect_version(resolved))
        raise JavaResolutionError(f"Java executable not runnable: {path}")

    java_home = os.environ.get("JAVA_HOME")
    if java_home:
        candidate = Path(java_home) / "bin" / binary_name
        searched.append(str(candidate))
        if _is_runnable(candidate):
            resolved = str(candidate.resolve())
            return JavaRuntime(path=resolved, source="java-home", version=detect_version(resolved))

    on_path = shutil.which(binary_name)
    searched.append(f"PATH:{binary_name}")
    if on_path:
        return JavaRuntime(path=on_path, source="path", version=detect_version(on_path))

    raise JavaResolutionError(
        "Unable to locate a Java runtime. "
        f"searched=[{', '.join(searched)}]. "
        "Set JAVA_HOME, put java on PATH, or pass --java."
    )


def detect_version(java_path: str) -> JavaVersion:
    """Run ``java -version`` and parse the reported runtime version.

    Notes:
        The JVM prints its banner on stderr; stdout is consulted as a fallback
        for launchers that redirect it.
    """
    try:
        proc = subprocess.run(
            [java_path, "-version"],
            capture_output=True,
            text=True,
            timeout=30,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise JavaResolutionError(f"Unable to run {java_path} -version: {exc}") from exc

    match = _VERSION_LINE.search(proc.stderr or "") or _VERSION_LINE.search(proc.stdout or "")
    if not match:
        raise JavaResolutionError(f"Unable to read the Java version reported by {java_path}")
    try:
        return JavaVersion.parse(match.group(1))
    except ValueError as exc:
        raise JavaResolutionError(f"Unrecognized Java version \"{match.group(1)}\" reported by {java_path}") from exc


def _binary_name() -> str:
    if sys.platform.startswith("win"):
        return "java.exe"
    return "java"


def _is_runnable(path: Path) -> bool:
    if not path.exists() or not path.is_file():
        return False
    if sys.platform.startswith("win"):
        return True
    return os.access(path, os.X_OK)
