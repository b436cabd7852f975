"""
Docker packager.

Turns a staged installation tree into a `.tar.gz` image archive:

    1. setup                 - copy install dir and extra files into staging
    2. write_docker_file     - render the descriptor template into staging
    3. create_docker_image   - run `fakeroot docker build ...` into PACKAGE_DIR

Any failure moves the build to BuildState.FAILED and aborts. Nothing is
retried and partial output is not cleaned up.
"""

import logging
import os

from .builder import artifact_name, build_artifact, render_build_descriptor
from .config import config
from .errors import PackagerError, StagingError
from .models import BuildState, PackageMetadata, PlatformInfo, ProjectDescriptor
from .staging import stage_extra_files, stage_install_dir
from .validation import (
    NormalizationResult,
    image_tag,
    normalize_architecture,
    normalize_package_name,
    normalize_version,
)

logger = logging.getLogger(__name__)


class DockerPackager:
    """
    Packager backend producing `<name>_<version>-<iteration>_<arch>.tar.gz`.

    Args:
        project: Project being packaged
        staging_dir: Private scratch directory for this build
        platform_info: Host description. Default: PlatformInfo.detect()
        metadata: vendor/license/priority/section. Default: PackageMetadata()
        cfg: Configuration. Default: the global config
    """

    id = "docker"

    def __init__(
        self,
        project: ProjectDescriptor,
        staging_dir: str,
        platform_info: PlatformInfo = None,
        metadata: PackageMetadata = None,
        cfg=config,
    ):
        self.project = project
        self.staging_dir = staging_dir
        self.platform_info = platform_info or PlatformInfo.detect()
        self.metadata = metadata or PackageMetadata()
        self.config = cfg
        self.state = BuildState.PENDING

    def _report(self, field: str, result: NormalizationResult) -> str:
        if result.was_modified:
            logger.warning(
                f"{result.rule} Converting `{result.original_value}' to `{result.value}'.",
                extra={
                    "field": field,
                    "original": result.original_value,
                    "converted": result.value,
                    "rule": result.rule,
                },
            )
        return result.value

    # -------------------------------
    # Normalized identifiers
    # -------------------------------

    @property
    def safe_base_package_name(self) -> str:
        return self._report("name", normalize_package_name(self.project.package_name))

    @property
    def safe_version(self) -> str:
        normalized = normalize_version(self.project.build_version)
        for result in normalized.modifications():
            self._report("version", result)
        return normalized.value

    @property
    def safe_build_iteration(self) -> str:
        # Passed through as-is; callers control the iteration counter.
        return self.project.build_iteration

    @property
    def safe_architecture(self) -> str:
        return normalize_architecture(self.platform_info)

    def identifiers(self) -> dict:
        """Normalize every identifier once, warning about each conversion."""
        return {
            "name": self.safe_base_package_name,
            "version": self.safe_version,
            "iteration": self.safe_build_iteration,
            "architecture": self.safe_architecture,
        }

    @property
    def package_name(self) -> str:
        """Archive file name; recomputed from the project on every access."""
        return artifact_name(**self.identifiers())

    def image_tag(self, identifiers: dict = None) -> str:
        if self.config.IMAGE_TAG:
            return self.config.IMAGE_TAG
        ids = identifiers or self.identifiers()
        return image_tag(ids["name"], ids["version"])

    # -------------------------------
    # Lifecycle
    # -------------------------------

    def setup(self) -> None:
        """Copy the install dir and any extra package files into staging."""
        try:
            stage_install_dir(self.project.install_dir, self.staging_dir, self.project.exclusions)
            stage_extra_files(self.project.extra_package_files, self.staging_dir)
        except OSError as e:
            raise StagingError(self.staging_dir, e) from e
        self.state = BuildState.STAGED

    def template_context(self, identifiers: dict = None) -> dict:
        ids = identifiers or self.identifiers()
        return {
            **ids,
            **self.metadata.as_dict(),
            "install_dir": self.project.install_dir,
            "base_image": self.config.BASE_IMAGE,
            "image_tag": self.image_tag(ids),
            "extra_package_files": [
                os.path.abspath(f).lstrip(os.sep) for f in self.project.extra_package_files
            ],
        }

    def write_docker_file(self, identifiers: dict = None) -> str:
        """Render the descriptor template into the staging directory."""
        path = render_build_descriptor(
            self.config.DOCKERFILE_TEMPLATE,
            self.staging_dir,
            self.template_context(identifiers),
            self.config,
        )
        self.state = BuildState.DESCRIPTOR_RENDERED
        return path

    def create_docker_image(self, identifiers: dict = None) -> str:
        """Build the image archive into PACKAGE_DIR and return its path."""
        ids = identifiers or self.identifiers()
        output_dir = self.config.PACKAGE_DIR
        os.makedirs(output_dir, exist_ok=True)

        path = build_artifact(
            self.staging_dir,
            output_dir,
            artifact_name(**ids),
            self.image_tag(ids),
            self.config,
        )
        self.state = BuildState.ARTIFACT_BUILT
        return path

    def run(self) -> str:
        """
        Run the whole packaging step.

        Returns:
            Path to the built archive

        Raises:
            PackagerError: On any staging, rendering or build failure
        """
        logger.info(f"Packaging {self.project.package_name} {self.project.build_version} with {self.id}")
        try:
            self.setup()
            ids = self.identifiers()
            self.write_docker_file(ids)
            return self.create_docker_image(ids)
        except (PackagerError, OSError):
            self.state = BuildState.FAILED
            raise
