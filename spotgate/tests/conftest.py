import sys

from pathlib import Path

import pytest


FAKE_JAVA = """#!{python}
import json
import os
import sys
import time

args = sys.argv[1:]
if "-version" in args:
    sys.stderr.write('openjdk version "{version}" 2022-01-18\\n')
    sys.exit(0)

props = dict(arg[2:].split("=", 1) for arg in args if arg.startswith("-D") and "=" in arg)
mode = props.get("fake.mode", "ok")

if mode == "sleep":
    with open(props["fake.pidfile"], "w") as handle:
        handle.write(str(os.getpid()))
    time.sleep(60)
    sys.exit(0)

request = json.loads(sys.stdin.read())
print("analyzing", len(request["classes"]), "input(s)")
sys.stderr.write("engine warning line\\n")

if "fake.capture" in props:
    with open(props["fake.capture"], "w") as handle:
        json.dump({{"argv": args, "request": request, "cwd": os.getcwd(), "classpath_env": os.environ.get("CLASSPATH")}}, handle)

if mode == "crash":
    sys.exit(3)
if mode == "silent":
    sys.exit(0)
with open(request["result_path"], "w") as handle:
    if mode == "garbage":
        handle.write("not json")
    else:
        json.dump(
            {{
                "bug_count": int(props.get("fake.bugs", "0")),
                "error_count": int(props.get("fake.errors", "0")),
                "missing_class_count": 0,
            }},
            handle,
        )
if mode == "exit-after-result":
    sys.exit(137)
"""


def write_fake_java(path: Path, version: str = "17.0.2") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(FAKE_JAVA.format(python=sys.executable, version=version), encoding="utf-8")
    path.chmod(0o755)
    return path


@pytest.fixture
def fake_java(tmp_path) -> Path:
    return write_fake_java(tmp_path / "jdk" / "bin" / "java")


@pytest.fixture
def fake_java_factory(tmp_path):
    def factory(version: str, name: str = "java") -> Path:
        return write_fake_java(tmp_path / f"jdk-{version}" / "bin" / name, version=version)

    return factory
