import dataclasses
import logging
from pathlib import Path

import pytest

from dockerpack.errors import BuildError, StagingError, TemplateRenderError
from dockerpack.models import BuildState, PackageMetadata, PlatformInfo, ProjectDescriptor
from dockerpack.packager import DockerPackager
from dockerpack.staging import staged_path


def _warnings(caplog):
    return [r for r in caplog.records if r.levelno == logging.WARNING]


def test_package_name_from_normalized_identifiers(tmp_path, project, x86_64, cfg):
    packager = DockerPackager(project, str(tmp_path / "staging"), x86_64, cfg=cfg)
    assert packager.package_name == "hamlet_1.2.3-1_amd64.tar.gz"


def test_package_name_tracks_project_changes(tmp_path, project, x86_64, cfg):
    packager = DockerPackager(project, str(tmp_path / "staging"), x86_64, cfg=cfg)
    packager.project = dataclasses.replace(project, build_iteration="2")
    assert packager.package_name == "hamlet_1.2.3-2_amd64.tar.gz"


def test_name_conversion_warns_with_details(tmp_path, project, x86_64, cfg, caplog):
    project = dataclasses.replace(project, package_name="My_Cool_App!!")
    packager = DockerPackager(project, str(tmp_path / "staging"), x86_64, cfg=cfg)

    with caplog.at_level(logging.WARNING):
        assert packager.safe_base_package_name == "my-cool-app-"

    [record] = _warnings(caplog)
    assert record.field == "name"
    assert record.original == "My_Cool_App!!"
    assert record.converted == "my-cool-app-"
    assert "lower case" in record.rule
    assert "Converting `My_Cool_App!!' to `my-cool-app-'" in record.getMessage()


def test_version_warns_once_per_pass(tmp_path, project, x86_64, cfg, caplog):
    project = dataclasses.replace(project, build_version="1.0-beta 2")
    packager = DockerPackager(project, str(tmp_path / "staging"), x86_64, cfg=cfg)

    with caplog.at_level(logging.WARNING):
        assert packager.safe_version == "1.0~beta_2"

    records = _warnings(caplog)
    assert [r.field for r in records] == ["version", "version"]
    assert [r.original for r in records] == ["1.0-beta 2", "1.0-beta 2"]
    assert [r.converted for r in records] == ["1.0~beta 2", "1.0~beta_2"]


def test_clean_identifiers_do_not_warn(tmp_path, project, cfg, caplog):
    armv6l = PlatformInfo(kernel_machine="armv6l", platform_name="raspbian")
    packager = DockerPackager(project, str(tmp_path / "staging"), armv6l, cfg=cfg)

    with caplog.at_level(logging.WARNING):
        assert packager.package_name == "hamlet_1.2.3-1_armhf.tar.gz"

    assert _warnings(caplog) == []


def test_image_tag_derived_or_overridden(tmp_path, project, x86_64, cfg):
    project = dataclasses.replace(project, build_version="12.0.0-rc.6")
    packager = DockerPackager(project, str(tmp_path / "staging"), x86_64, cfg=cfg)
    assert packager.image_tag() == "hamlet:12.0.0_rc.6"

    cfg.IMAGE_TAG = "acme/hamlet:dev"
    assert packager.image_tag() == "acme/hamlet:dev"


def test_run_builds_archive(tmp_path, install_dir, x86_64, cfg):
    extra = tmp_path / "etc" / "hamlet.conf"
    extra.parent.mkdir()
    extra.write_text("ghost=true\n")
    project = ProjectDescriptor(
        package_name="hamlet",
        build_version="1.2.3-rc.1",
        build_iteration="4",
        install_dir=str(install_dir),
        extra_package_files=(str(extra),),
        exclusions=("*.tmp",),
    )
    staging = tmp_path / "staging"
    metadata = PackageMetadata(license="Apache-2.0")
    packager = DockerPackager(project, str(staging), x86_64, metadata=metadata, cfg=cfg)

    artifact = Path(packager.run())

    assert packager.state is BuildState.ARTIFACT_BUILT
    assert artifact == Path(cfg.PACKAGE_DIR) / "hamlet_1.2.3~rc.1-4_amd64.tar.gz"
    assert artifact.read_text() == f"IMAGE build -t hamlet:1.2.3_rc.1 {staging / 'Dockerfile'}"

    staged_install = Path(staged_path(str(staging), str(install_dir)))
    assert (staged_install / "bin" / "hamlet").exists()
    assert not (staged_install / "cache" / "junk.tmp").exists()
    assert Path(staged_path(str(staging), str(extra))).read_text() == "ghost=true\n"

    dockerfile = (staging / "Dockerfile").read_text()
    assert 'org.opencontainers.image.licenses="Apache-2.0"' in dockerfile
    assert 'com.getchef.omnibus.architecture="amd64"' in dockerfile
    assert f"COPY {str(extra).lstrip('/')} {extra}" in dockerfile


def test_run_records_failure_and_reports_command(tmp_path, project, x86_64, cfg, failing_tool):
    cfg.BUILD_TOOL = str(failing_tool)
    packager = DockerPackager(project, str(tmp_path / "staging"), x86_64, cfg=cfg)

    with pytest.raises(BuildError) as excinfo:
        packager.run()

    assert packager.state is BuildState.FAILED
    assert str(failing_tool) in excinfo.value.command_line
    assert "hamlet:1.2.3" in excinfo.value.command


def test_run_stops_on_template_failure(tmp_path, project, x86_64, cfg):
    cfg.DOCKERFILE_TEMPLATE = str(tmp_path / "missing.j2")
    packager = DockerPackager(project, str(tmp_path / "staging"), x86_64, cfg=cfg)

    with pytest.raises(TemplateRenderError):
        packager.run()

    assert packager.state is BuildState.FAILED
    assert not Path(cfg.PACKAGE_DIR).exists()


def test_run_stops_on_staging_failure(tmp_path, x86_64, cfg):
    project = ProjectDescriptor("hamlet", "1.0", "1", str(tmp_path / "missing"))
    packager = DockerPackager(project, str(tmp_path / "staging"), x86_64, cfg=cfg)

    with pytest.raises(StagingError):
        packager.run()

    assert packager.state is BuildState.FAILED
    assert not (tmp_path / "staging" / "Dockerfile").exists()


def test_already_normalized_identifiers_do_not_warn(tmp_path, project, x86_64, cfg, caplog):
    project = dataclasses.replace(project, package_name="my-cool-app-", build_version="1.0_beta")
    packager = DockerPackager(project, str(tmp_path / "staging"), x86_64, cfg=cfg)

    with caplog.at_level(logging.WARNING):
        assert packager.package_name == "my-cool-app-_1.0_beta-1_amd64.tar.gz"
        assert packager.image_tag() == "my-cool-app:1.0_beta"

    assert _warnings(caplog) == []
