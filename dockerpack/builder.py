"""
Image builder module for the docker packager.

Renders the build descriptor into the staging directory and runs the
external image build tool to produce the final archive.
"""

import logging
import os
import subprocess
import threading

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from .config import config
from .errors import BuildError, TemplateRenderError

logger = logging.getLogger(__name__)

# Seconds to wait for stderr to close after a timed-out build is killed
STDERR_DRAIN_TIMEOUT = 5


def label_value(value) -> str:
    """
    Quote a value for a Dockerfile LABEL instruction.

    Backslashes, double quotes and '$' are escaped; line breaks become
    spaces since a LABEL value must stay on one line.

    Example:
        >>> label_value('Acme "Ops" <ops@acme.test>')
        '"Acme \\\\"Ops\\\\" <ops@acme.test>"'
    """
    text = str(value)
    for char in ("\\", "\"", "$"):
        text = text.replace(char, "\\" + char)
    text = " ".join(text.splitlines())
    return f'"{text}"'


def artifact_name(name: str, version: str, iteration: str, architecture: str) -> str:
    """
    Assemble the archive file name from already-normalized identifiers.

    The iteration is used as given.

    Example:
        >>> artifact_name("myapp", "1.2.3", "1", "amd64")
        'myapp_1.2.3-1_amd64.tar.gz'
    """
    return f"{name}_{version}-{iteration}_{architecture}.tar.gz"


def render_build_descriptor(template_path: str, staging_root: str, context: dict, cfg=config) -> str:
    """
    Render the descriptor template to <staging_root>/<DESCRIPTOR_FILENAME>.

    Args:
        template_path: Path to a Jinja2 template
        staging_root: Staging directory of the current build
        context: Template variables
        cfg: Configuration to read DESCRIPTOR_FILENAME from

    Returns:
        Path of the rendered descriptor

    Raises:
        TemplateRenderError: If the template cannot be read or parsed, or
            references a variable missing from context
    """
    destination = os.path.join(staging_root, cfg.DESCRIPTOR_FILENAME)
    env = Environment(
        loader=FileSystemLoader(os.path.dirname(os.path.abspath(template_path))),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["label"] = label_value

    try:
        template = env.get_template(os.path.basename(template_path))
        rendered = template.render(**context)
        with open(destination, "w", encoding="utf-8") as f:
            f.write(rendered)
    except (TemplateError, OSError) as e:
        logger.error(f"Failed to render {template_path}: {e}")
        raise TemplateRenderError(template_path, e) from e

    logger.debug(f"Rendered {template_path} => {destination}")
    return destination


def build_command(staging_root: str, tag: str, cfg=config) -> list:
    """
    Return the argv for the image build.

    Shape: <wrapper> <tool> build -t <tag> <staging_root>/<DESCRIPTOR_FILENAME>
    The wrapper is omitted when PRIVILEGE_WRAPPER is empty.
    """
    descriptor = os.path.join(staging_root, cfg.DESCRIPTOR_FILENAME)
    command = [cfg.BUILD_TOOL, "build", "-t", tag, descriptor]
    if cfg.PRIVILEGE_WRAPPER:
        command.insert(0, cfg.PRIVILEGE_WRAPPER)
    return command


def _stream_build(command: list, output_dir: str, artifact, timeout, label: str) -> tuple:
    process = subprocess.Popen(
        command,
        cwd=output_dir,
        stdout=artifact,
        stderr=subprocess.PIPE,
        text=True,
        bufsize=1,  # Line buffered
    )

    output_lines = []

    def drain():
        for line in process.stderr:
            line = line.rstrip()
            if line:
                logger.debug(f"[{label}] {line}")
                output_lines.append(line)

    # BUILD_TIMEOUT has to hold while stderr is still open.
    reader = threading.Thread(target=drain, daemon=True)
    reader.start()

    try:
        return_code = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()
        reader.join(timeout=STDERR_DRAIN_TIMEOUT)
        raise
    reader.join()
    return return_code, "\n".join(output_lines)


def build_artifact(staging_root: str, output_dir: str, artifact: str, tag: str, cfg=config) -> str:
    """
    Run the image build tool and write its output to <output_dir>/<artifact>.

    The tool runs with output_dir as its working directory, and its standard
    output is redirected into the archive file. This call blocks until the
    tool exits; BUILD_TIMEOUT bounds the wait when set.

    Args:
        staging_root: Staging directory containing the rendered descriptor
        output_dir: Directory the archive is written to
        artifact: Archive file name (see artifact_name)
        tag: Image reference passed to `-t`
        cfg: Configuration

    Returns:
        Absolute path to the archive

    Raises:
        BuildError: If the tool cannot be started, exits non-zero or times out.
            Carries the command and the tool's diagnostic output. A partially
            written archive is left in place.
    """
    command = build_command(staging_root, tag, cfg)
    artifact_path = os.path.join(os.path.abspath(output_dir), artifact)

    logger.info(f"Creating docker image {artifact}")
    logger.debug(f"Running command: {' '.join(command)} > {artifact_path}")

    is_debug = logger.getEffectiveLevel() == logging.DEBUG

    try:
        with open(artifact_path, "wb") as out:
            if is_debug:
                return_code, output = _stream_build(
                    command, output_dir, out, cfg.BUILD_TIMEOUT, os.path.basename(cfg.BUILD_TOOL)
                )
            else:
                proc = subprocess.run(
                    command,
                    cwd=output_dir,
                    stdout=out,
                    stderr=subprocess.PIPE,
                    timeout=cfg.BUILD_TIMEOUT,
                )
                return_code = proc.returncode
                output = proc.stderr.decode(errors="replace")
    except subprocess.TimeoutExpired:
        logger.error(f"Build timed out after {cfg.BUILD_TIMEOUT}s")
        raise BuildError(command, None, f"timed out after {cfg.BUILD_TIMEOUT}s")
    except OSError as e:
        logger.error(f"Could not run build command: {e}")
        raise BuildError(command, None, str(e)) from e

    if return_code != 0:
        logger.error(f"Build failed with exit code {return_code}: {output}")
        raise BuildError(command, return_code, output)

    logger.info(f"Build complete: {artifact_path}")
    return artifact_path
