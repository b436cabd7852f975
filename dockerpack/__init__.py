"""
Docker packager backend with identifier normalization.

Stages an installation tree, renders a Dockerfile from a template and runs
the image build tool under a root-emulation shim to produce a distributable
archive named:

    <name>_<version>-<iteration>_<arch>.tar.gz

Project identifiers are normalized before they go into the name:
    - name: lowercase a-z, 0-9, '.', '+', '-' (other runs become '-')
    - version: dashes become tildes, then a-z, A-Z, 0-9, '.', '+', ':', '~'
      (other runs become '_')
    - architecture: x86_64 -> amd64, i686 -> i386, armv6l on raspbian -> armhf

Every conversion of a name or version is logged as a warning.
"""

__version__ = "0.1.0"

from .config import Config
from .errors import (
    PackagerError,
    InvalidValueError,
    TemplateRenderError,
    BuildError,
    StagingError,
)
from .models import ProjectDescriptor, PlatformInfo, PackageMetadata, BuildState
from .validation import (
    NormalizationResult,
    VersionNormalization,
    normalize_package_name,
    normalize_version,
    normalize_architecture,
    image_tag,
)
from .staging import stage_install_dir, stage_extra_files
from .builder import artifact_name, render_build_descriptor, build_artifact
from .packager import DockerPackager

__all__ = [
    "Config",
    "PackagerError",
    "InvalidValueError",
    "TemplateRenderError",
    "BuildError",
    "StagingError",
    "ProjectDescriptor",
    "PlatformInfo",
    "PackageMetadata",
    "BuildState",
    "NormalizationResult",
    "VersionNormalization",
    "normalize_package_name",
    "normalize_version",
    "normalize_architecture",
    "image_tag",
    "stage_install_dir",
    "stage_extra_files",
    "artifact_name",
    "render_build_descriptor",
    "build_artifact",
    "DockerPackager",
]
