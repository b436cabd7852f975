"""
Data passed into and tracked by the docker packager.
"""

from __future__ import annotations

import dataclasses
import platform
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .errors import InvalidValueError


@dataclass(frozen=True)
class ProjectDescriptor:
    """Project being packaged, as handed over by the host build system."""

    package_name: str
    build_version: str
    build_iteration: str
    install_dir: str
    extra_package_files: Tuple[str, ...] = ()
    exclusions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PlatformInfo:
    """Host CPU architecture and OS flavor."""

    kernel_machine: str
    platform_name: str

    @classmethod
    def detect(cls) -> PlatformInfo:
        """
        Describe the running host.

        The platform name is the os-release ID (e.g. "ubuntu", "raspbian"),
        falling back to the lowercased system name when no os-release exists.
        """
        try:
            name = platform.freedesktop_os_release().get("ID", "")
        except OSError:
            name = ""
        return cls(
            kernel_machine=platform.machine(),
            platform_name=name or platform.system().lower(),
        )


@dataclass(frozen=True)
class PackageMetadata:
    """
    Descriptive package metadata rendered into the build descriptor.

    Built once per build. Every field must be a string; anything else raises
    InvalidValueError at construction time, before any staging happens.
    """

    vendor: str = "Omnibus <omnibus@getchef.com>"
    license: str = "unknown"
    priority: str = "extra"
    section: str = "misc"

    def __post_init__(self):
        for f in dataclasses.fields(self):
            if not isinstance(getattr(self, f.name), str):
                raise InvalidValueError(f.name, "be a String")

    def replace(self, **changes) -> PackageMetadata:
        """Return a validated copy with the given fields overridden."""
        return dataclasses.replace(self, **changes)

    def as_dict(self) -> dict:
        return dataclasses.asdict(self)


class BuildState(Enum):
    PENDING = "pending"
    STAGED = "staged"
    DESCRIPTOR_RENDERED = "descriptor_rendered"
    ARTIFACT_BUILT = "artifact_built"
    FAILED = "failed"
