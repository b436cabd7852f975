"""
Staging module for the docker packager.

Assembles the per-build staging directory: a copy of the project's install
directory plus any extra package files, each kept at its absolute path
re-rooted under the staging directory.

    /opt/hamlet          => <staging>/opt/hamlet
    /path/to/foo.txt     => <staging>/path/to/foo.txt
"""

import fnmatch
import logging
import os
import shutil
from typing import Iterable

logger = logging.getLogger(__name__)


def staged_path(staging_root: str, path: str) -> str:
    """Return where an absolute host path lands inside the staging root."""
    return os.path.join(staging_root, os.path.abspath(path).lstrip(os.sep))


def _exclusion_filter(source_root: str, exclusions: Iterable[str]):
    patterns = list(exclusions)

    def ignore(directory, names):
        ignored = set()
        for name in names:
            relpath = os.path.relpath(os.path.join(directory, name), source_root)
            for pattern in patterns:
                if fnmatch.fnmatch(relpath, pattern) or fnmatch.fnmatch(name, pattern):
                    logger.debug(f"Excluding {relpath} (matches {pattern})")
                    ignored.add(name)
                    break
        return ignored

    return ignore


def stage_install_dir(install_dir: str, staging_root: str, exclusions: Iterable[str] = ()) -> str:
    """
    Copy the project's install directory into the staging root.

    Args:
        install_dir: Absolute install directory of the project (e.g. /opt/hamlet)
        staging_root: Private staging directory for this build
        exclusions: Glob patterns matched against each path relative to
            install_dir and against its basename; matches are skipped

    Returns:
        The staged copy of install_dir

    Raises:
        OSError: If install_dir does not exist or cannot be copied
    """
    destination = staged_path(staging_root, install_dir)
    logger.info(f"Staging {install_dir} => {destination}")

    shutil.copytree(
        install_dir,
        destination,
        symlinks=True,
        ignore=_exclusion_filter(install_dir, exclusions),
        dirs_exist_ok=True,
    )
    return destination


def stage_extra_files(files: Iterable[str], staging_root: str) -> None:
    """
    Copy extra package files into the staging root, keeping their paths.

    For each file the parent directory is recreated under staging_root and
    the file is copied into it. Existing copies are overwritten, so running
    this twice with the same inputs yields the same layout.

    Example:
        stage_extra_files(["/path/to/foo.txt"], "/tmp/scratch")
        # => /tmp/scratch/path/to/foo.txt
    """
    for file in files:
        parent = os.path.dirname(os.path.abspath(file))
        destination = staged_path(staging_root, parent)

        os.makedirs(destination, exist_ok=True)
        shutil.copy2(file, destination)
        logger.debug(f"Staged extra file {file} => {destination}")
