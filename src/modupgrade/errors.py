"""Error kinds raised while upgrading a module or its dependencies.

Every error is fatal to the current invocation. Each class carries the exit
code the CLI reports for it, so callers only need to catch ``UpgradeError``.
"""

from .constants import ExitCodes


class UpgradeError(Exception):
    """Base class for all upgrade failures."""

    exit_code = ExitCodes.UPGRADE_ERROR


class InvalidModulePath(UpgradeError):
    """A module path is malformed, or would be after an upgrade."""

    exit_code = ExitCodes.USAGE_ERROR


class InvalidVersion(UpgradeError):
    """A version string is not a valid semantic version."""

    exit_code = ExitCodes.USAGE_ERROR


class NotADependency(UpgradeError):
    """The target module is not required by the manifest."""


class NoUpgradeAvailable(UpgradeError):
    """The boundary search found no higher major version."""


class VersionNotFound(UpgradeError):
    """Neither the suffixed nor the incompatible path has the version."""


class QueryFailure(UpgradeError):
    """The module index could not answer (transport or protocol error)."""

    exit_code = ExitCodes.CONNECTION_ERROR


class InvalidImportAfterRewrite(UpgradeError):
    """A rewritten import path is not a valid import path."""


class ConflictingUpgradeTargets(UpgradeError):
    """Two requirements would be upgraded onto the same module path."""


class ManifestParseError(UpgradeError):
    """The go.mod file could not be parsed."""

    exit_code = ExitCodes.FILE_ERROR


class PersistenceFailure(UpgradeError):
    """Reading or writing the manifest or a source file failed."""

    exit_code = ExitCodes.FILE_ERROR


class SourceParseError(UpgradeError):
    """A Go source file's package clause or imports could not be scanned."""

    exit_code = ExitCodes.FILE_ERROR


class InvalidConfiguration(UpgradeError):
    """The configuration file or an option value is unusable."""

    exit_code = ExitCodes.USAGE_ERROR
