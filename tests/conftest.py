import sys
import textwrap
from pathlib import Path

import pytest

from dockerpack.config import Config
from dockerpack.models import PlatformInfo, ProjectDescriptor

FAKE_TOOL = textwrap.dedent(
    """
    import sys

    args = sys.argv[1:]
    if {fail}:
        sys.stderr.write("error: cannot build " + args[-1] + "\\n")
        sys.exit(3)
    sys.stderr.write("Step 1/2 : FROM scratch\\n")
    sys.stdout.write("IMAGE " + " ".join(args))
    """
)


def _write_tool(tmp_path: Path, name: str, fail: bool) -> Path:
    script = tmp_path / name
    script.write_text(FAKE_TOOL.format(fail=fail), encoding="utf-8")
    return script


@pytest.fixture
def cfg(tmp_path, monkeypatch):
    """Config whose build tool is a Python script run through the interpreter."""
    for var in ("IMAGE_TAG", "BUILD_TIMEOUT", "DOCKERFILE_TEMPLATE", "DESCRIPTOR_FILENAME"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("PACKAGE_DIR", str(tmp_path / "pkg"))
    monkeypatch.setenv("PRIVILEGE_WRAPPER", sys.executable)
    monkeypatch.setenv("BUILD_TOOL", str(_write_tool(tmp_path, "fake_docker.py", fail=False)))
    return Config()


@pytest.fixture
def failing_tool(tmp_path) -> Path:
    return _write_tool(tmp_path, "broken_docker.py", fail=True)


@pytest.fixture
def install_dir(tmp_path) -> Path:
    root = tmp_path / "opt" / "hamlet"
    (root / "bin").mkdir(parents=True)
    (root / "bin" / "hamlet").write_text("#!/bin/sh\necho to be\n")
    (root / "cache").mkdir()
    (root / "cache" / "junk.tmp").write_text("junk")
    return root


@pytest.fixture
def project(install_dir) -> ProjectDescriptor:
    return ProjectDescriptor(
        package_name="hamlet",
        build_version="1.2.3",
        build_iteration="1",
        install_dir=str(install_dir),
    )


@pytest.fixture
def x86_64() -> PlatformInfo:
    return PlatformInfo(kernel_machine="x86_64", platform_name="ubuntu")


@pytest.fixture
def hanging_tool(tmp_path) -> Path:
    """A build tool that reports progress and then never finishes."""
    script = tmp_path / "hanging_docker.py"
    script.write_text(
        "import sys, time\n"
        "sys.stderr.write('Step 1/2 : FROM scratch\\n')\n"
        "sys.stderr.flush()\n"
        "time.sleep(60)\n",
        encoding="utf-8",
    )
    return script
