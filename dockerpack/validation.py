"""
Identifier normalization module for the docker packager.

Maps raw project identifiers (package name, version, architecture) to strings
the target packaging ecosystem accepts. All functions here are pure: they
never log and never raise, they return a NormalizationResult and leave it to
the caller to surface modifications.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import PlatformInfo

# Allow-list grammars
PACKAGE_NAME_CHARS = r"a-z0-9\.\+\-"
VERSION_CHARS = r"a-zA-Z0-9\.\+\:\~"

PACKAGE_NAME_PATTERN = re.compile(rf"[{PACKAGE_NAME_CHARS}]+")
VERSION_PATTERN = re.compile(rf"[{VERSION_CHARS}]+")
# The grammar pass fills with '_', so normalized versions may also contain it.
NORMALIZED_VERSION_PATTERN = re.compile(rf"[{VERSION_CHARS}_]+")

_PACKAGE_NAME_INVALID = re.compile(rf"[^{PACKAGE_NAME_CHARS}]+")
_VERSION_INVALID = re.compile(rf"[^{VERSION_CHARS}]+")

# Image reference grammar used by the build tool for `-t <repository>:<tag>`
_REPOSITORY_INVALID = re.compile(r"[^a-z0-9._-]+")
_REPOSITORY_SEPARATORS = re.compile(r"[._-]{2,}")
_TAG_INVALID = re.compile(r"[^A-Za-z0-9_.-]+")
MAX_TAG_LENGTH = 128
DEFAULT_REPOSITORY = "image"

PACKAGE_NAME_RULE = (
    "The `name' component of package names can only include lower case "
    "alphabetical characters (a-z), numbers (0-9), dots (.), plus signs (+), "
    "and dashes (-)."
)
VERSION_DASH_RULE = (
    "Dashes hold special significance in package versions. Versions that "
    "contain a dash and should be considered an earlier version (e.g. "
    "pre-releases) may actually be ordered as later (e.g. 12.0.0-rc.6 > "
    "12.0.0). Dashes (-) are replaced with tildes (~)."
)
VERSION_RULE = (
    "The `version' component of package names can only include alphabetical "
    "characters (a-z, A-Z), numbers (0-9), dots (.), plus signs (+), "
    "tildes (~) and colons (:)."
)


@dataclass(frozen=True)
class NormalizationResult:
    """
    Outcome of normalizing one identifier.

    Attributes:
        value: The normalized string
        was_modified: True if value differs from the input of this step
        original_value: The raw identifier as supplied by the project
        rule: Human-readable description of the grammar that was enforced
    """

    value: str
    was_modified: bool
    original_value: str
    rule: str = ""


@dataclass(frozen=True)
class VersionNormalization:
    """Both passes of version normalization; each one is reportable on its own."""

    dash_pass: NormalizationResult
    grammar_pass: NormalizationResult

    @property
    def value(self) -> str:
        return self.grammar_pass.value

    @property
    def was_modified(self) -> bool:
        return self.dash_pass.was_modified or self.grammar_pass.was_modified

    def modifications(self):
        """Results of the passes that changed their input, in order."""
        return [r for r in (self.dash_pass, self.grammar_pass) if r.was_modified]


def _collapse(value: str, invalid: re.Pattern, filler: str) -> str:
    # An empty identifier has no runs to collapse but still violates the
    # one-or-more grammar, so it becomes a lone filler.
    return invalid.sub(filler, value) or filler


def normalize_package_name(raw: str) -> NormalizationResult:
    """
    Normalize a package name to lowercase letters, digits, '.', '+' and '-'.

    Args:
        raw: Package name as declared by the project

    Returns:
        NormalizationResult; unchanged if raw already matches the grammar,
        otherwise lowercased with every disallowed run collapsed to one '-'.

    Examples:
        >>> normalize_package_name("myapp").value
        'myapp'
        >>> normalize_package_name("My_Cool_App!!").value
        'my-cool-app-'
    """
    if PACKAGE_NAME_PATTERN.fullmatch(raw):
        return NormalizationResult(raw, False, raw, PACKAGE_NAME_RULE)

    converted = _collapse(raw.lower(), _PACKAGE_NAME_INVALID, "-")
    return NormalizationResult(converted, converted != raw, raw, PACKAGE_NAME_RULE)


def replace_version_dashes(raw: str) -> NormalizationResult:
    """
    Replace every '-' in a version with '~'.

    Each dash becomes exactly one tilde; nothing is collapsed.

    Example:
        >>> replace_version_dashes("12.0.0-rc.6").value
        '12.0.0~rc.6'
    """
    if "-" not in raw:
        return NormalizationResult(raw, False, raw, VERSION_DASH_RULE)
    return NormalizationResult(raw.replace("-", "~"), True, raw, VERSION_DASH_RULE)


def sanitize_version(version: str, original: Optional[str] = None) -> NormalizationResult:
    """
    Collapse characters outside the version grammar into '_'.

    The filler itself is kept, so a version that was already sanitized
    passes through unchanged and unflagged.

    Args:
        version: Version to check (usually the output of replace_version_dashes)
        original: Raw version the project declared, for reporting.
            Defaults to version itself.

    Returns:
        NormalizationResult whose was_modified reflects this pass only.
    """
    if original is None:
        original = version

    if VERSION_PATTERN.fullmatch(version):
        return NormalizationResult(version, False, original, VERSION_RULE)

    converted = _collapse(version, _VERSION_INVALID, "_")
    return NormalizationResult(converted, converted != version, original, VERSION_RULE)


def normalize_version(raw: str) -> VersionNormalization:
    """
    Normalize a version: dash pass first, then grammar pass.

    Example:
        >>> normalize_version("1.0-beta 2").value
        '1.0~beta_2'
    """
    dashed = replace_version_dashes(raw)
    return VersionNormalization(
        dash_pass=dashed,
        grammar_pass=sanitize_version(dashed.value, original=raw),
    )


class Machine(Enum):
    """Kernel machine names with a special mapping, plus a passthrough variant."""

    X86_64 = "x86_64"
    I686 = "i686"
    ARMV6L = "armv6l"
    OTHER = None

    @classmethod
    def parse(cls, raw: str) -> "Machine":
        try:
            return cls(raw)
        except ValueError:
            return cls.OTHER


class Platform(Enum):
    RASPBIAN = "raspbian"
    OTHER = None

    @classmethod
    def parse(cls, raw: str) -> "Platform":
        return cls.RASPBIAN if raw == cls.RASPBIAN.value else cls.OTHER


def normalize_architecture(info: PlatformInfo) -> str:
    """
    Map the host machine to the architecture name used in package file names.

    Mapping:
        x86_64             -> amd64
        i686               -> i386
        armv6l on raspbian -> armhf
        armv6l elsewhere   -> armv6l
        anything else      -> unchanged

    This is a categorical remap, so no modification is reported.
    """
    machine = Machine.parse(info.kernel_machine)

    if machine is Machine.X86_64:
        return "amd64"
    if machine is Machine.I686:
        return "i386"
    if machine is Machine.ARMV6L:
        if Platform.parse(info.platform_name) is Platform.RASPBIAN:
            return "armhf"
        return "armv6l"
    if machine is Machine.OTHER:
        return info.kernel_machine
    raise AssertionError(f"Unhandled machine: {machine}")


def image_tag(package_name: str, version: str) -> str:
    """
    Build the `<repository>:<tag>` reference passed to the image build tool.

    Both parts are re-sanitized for the image reference grammar, which is
    narrower than the package grammars ('+', '~' and ':' are not allowed).
    The repository must start and end with [a-z0-9] and may not repeat
    separators; it falls back to "image" when nothing usable is left. The
    tag may not start with '.' or '-'.

    Example:
        >>> image_tag("my+app", "12.0.0~rc.6")
        'my-app:12.0.0_rc.6'
    """
    repository = _REPOSITORY_INVALID.sub("-", package_name.lower())
    repository = _REPOSITORY_SEPARATORS.sub("-", repository).strip("._-") or DEFAULT_REPOSITORY

    tag = _collapse(version, _TAG_INVALID, "_")
    if tag[0] in ".-":
        tag = "_" + tag[1:]
    tag = tag[:MAX_TAG_LENGTH]
    return f"{repository}:{tag}"
