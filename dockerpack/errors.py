"""
Exceptions raised by the docker packager.

Every fatal condition aborts the packaging step. Identifier normalization
never raises; it reports modifications through its result instead.
"""

import shlex


class PackagerError(Exception):
    """Base class for all packager failures."""


class InvalidValueError(PackagerError):
    """A metadata value was set to something of the wrong type."""

    def __init__(self, field: str, requirement: str):
        self.field = field
        self.requirement = requirement
        super().__init__(f"'{field}' must {requirement}")


class TemplateRenderError(PackagerError):
    """The build descriptor template could not be read or rendered."""

    def __init__(self, template_path: str, cause: Exception):
        self.template_path = template_path
        self.cause = cause
        super().__init__(f"Failed to render template {template_path}: {cause}")


class BuildError(PackagerError):
    """
    The external image build tool failed.

    Attributes:
        command: argv list that was executed
        returncode: exit status, or None if the tool never ran to completion
        output: captured diagnostic output of the tool
    """

    def __init__(self, command, returncode, output: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.output = output
        reason = f"exit code {returncode}" if returncode is not None else "did not complete"
        message = f"Build command failed ({reason}): {self.command_line}"
        if output:
            message = f"{message}\n{output.rstrip()}"
        super().__init__(message)

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)


class StagingError(PackagerError):
    """Files could not be copied into the staging directory."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to stage {path}: {cause}")
