"""
Command-line entry point for the docker packager.

Packages an installed project into a docker image archive:

    <PACKAGE_DIR>/<name>_<version>-<iteration>_<arch>.tar.gz

Environment Variables:
    LOG_LEVEL, PACKAGE_DIR, BUILD_TOOL, PRIVILEGE_WRAPPER, DESCRIPTOR_FILENAME,
    DOCKERFILE_TEMPLATE, BASE_IMAGE, IMAGE_TAG, BUILD_TIMEOUT

Example:
    $ LOG_LEVEL=DEBUG python app.py --name hamlet --build-version 1.0.0-rc.1 \\
          --install-dir /opt/hamlet --extra-file /etc/hamlet/hamlet.conf
"""

import argparse
import logging
import sys
import tempfile

from dockerpack.config import Config
from dockerpack.errors import PackagerError
from dockerpack.models import PackageMetadata, ProjectDescriptor
from dockerpack.packager import DockerPackager

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="dockerpack",
        description="Build a docker image archive from an installed project.",
    )
    parser.add_argument("--name", required=True, help="Project package name")
    parser.add_argument("--build-version", required=True, help="Project version")
    parser.add_argument("--build-iteration", default="1", help="Build iteration (default: 1)")
    parser.add_argument("--install-dir", required=True, help="Absolute install directory to package")
    parser.add_argument("--extra-file", action="append", default=[], dest="extra_files",
                        help="Extra file to include at its absolute path (repeatable)")
    parser.add_argument("--exclude", action="append", default=[], dest="exclusions",
                        help="Glob of install-dir paths to leave out (repeatable)")
    parser.add_argument("--staging-dir", help="Staging directory (default: a fresh temp dir)")
    parser.add_argument("--package-dir", help="Output directory (overrides PACKAGE_DIR)")
    parser.add_argument("--template", help="Dockerfile template (overrides DOCKERFILE_TEMPLATE)")
    parser.add_argument("--vendor", default=PackageMetadata.vendor)
    parser.add_argument("--license", default=PackageMetadata.license)
    parser.add_argument("--priority", default=PackageMetadata.priority)
    parser.add_argument("--section", default=PackageMetadata.section)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point for the docker packager."""
    args = parse_args(argv)

    cfg = Config()
    if args.package_dir:
        cfg.PACKAGE_DIR = args.package_dir
    if args.template:
        cfg.DOCKERFILE_TEMPLATE = args.template

    logging.basicConfig(
        level=cfg.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info(f"Configuration: {cfg}")

    try:
        metadata = PackageMetadata(
            vendor=args.vendor,
            license=args.license,
            priority=args.priority,
            section=args.section,
        )
        project = ProjectDescriptor(
            package_name=args.name,
            build_version=args.build_version,
            build_iteration=args.build_iteration,
            install_dir=args.install_dir,
            extra_package_files=tuple(args.extra_files),
            exclusions=tuple(args.exclusions),
        )
        staging_dir = args.staging_dir or tempfile.mkdtemp(prefix="dockerpack-")
        packager = DockerPackager(project, staging_dir, metadata=metadata, cfg=cfg)
        artifact = packager.run()
    except (PackagerError, OSError) as e:
        logger.error(f"Packaging failed: {e}")
        return 1

    print(artifact)
    return 0


if __name__ == "__main__":
    sys.exit(main())
