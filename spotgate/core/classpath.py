from __future__ import annotations

import re

from dataclasses import dataclass
from typing import Iterable

from spotgate.core.errors import ClasspathIncompatibility
from spotgate.core.java_runtime import JavaVersion


_ENGINE_JAR = re.compile(r"^spotbugs-(\d+(?:\.\d+)*)(?:[-.][A-Za-z][\w.-]*)?\.jar$")


@dataclass(frozen=True)
class Incompatibility:
    """Engine releases from ``engine_version`` on need at least ``java_version``."""
    engine_version: tuple[int, ...]
    java_version: JavaVersion


# Newest requirement first so the strictest rule wins.
KNOWN_INCOMPATIBILITIES = (
    Incompatibility(engine_version=(4, 9), java_version=JavaVersion(11)),
    Incompatibility(engine_version=(3, 1), java_version=JavaVersion(8)),
)


class ClasspathValidator:
    """Fail fast when the engine classpath cannot run on the current Java."""
    def __init__(
        self,
        platform_version: JavaVersion,
        incompatibilities: Iterable[Incompatibility] = KNOWN_INCOMPATIBILITIES,
    ) -> None:
        self.platform_version = platform_version
        self.incompatibilities = tuple(incompatibilities)

    def validate(self, file_names: Iterable[str]) -> None:
        """Check the engine jars named on the classpath.

        Args:
            file_names (Iterable[str]): Base names of the engine classpath entries.

        Raises:
            ClasspathIncompatibility: When an engine jar needs a newer Java
                than ``platform_version``.
        """
        offending: list[str] = []
        required: JavaVersion | None = None
        for name in sorted(set(file_names)):
            engine_version = engine_version_from_name(name)
            if engine_version is None:
                continue
            rule = self._rule_for(engine_version)
            if rule is None or self.platform_version >= rule.java_version:
                continue
            offending.append(name)
            if required is None or rule.java_version > required:
                required = rule.java_version

        if offending and required is not None:
            raise ClasspathIncompatibility(offending, str(required), str(self.platform_version))

    def _rule_for(self, engine_version: tuple[int, ...]) -> Incompatibility | None:
        for rule in self.incompatibilities:
            if _at_least(engine_version, rule.engine_version):
                return rule
        return None


def engine_version_from_name(file_name: str) -> tuple[int, ...] | None:
    """Return the engine version encoded in ``spotbugs-<version>.jar``, if any."""
    match = _ENGINE_JAR.match(file_name)
    if not match:
        return None
    return tuple(int(part) for part in match.group(1).split("."))


def _at_least(version: tuple[int, ...], minimum: tuple[int, ...]) -> bool:
    width = max(len(version), len(minimum))
    padded = version + (0,) * (width - len(version))
    floor = minimum + (0,) * (width - len(minimum))
    return padded >= floor
