"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    UPGRADE_ERROR = 3
    USAGE_ERROR = 4


class LookupMode(Enum):
    """Strategies for resolving which module owns an import path.

    Args:
        Enum (string): Lookup strategies supported by the program.
    """

    MANIFEST = "manifest"
    GO = "go"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    PROGRAM = "modupgrade"
    ALL_TARGET = "all"
    MOD_FILE = "go.mod"
    CONFIG_FILE = "modupgrade.yml"
    SOURCE_SUFFIX = ".go"
    SKIP_DIRS = ("vendor", "testdata")
    LOOKUP_MODES = [LookupMode.MANIFEST.value, LookupMode.GO.value]

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    ENV_LOG_LEVEL = "MODUPGRADE_LOG_LEVEL"

    GOPROXY_DEFAULT = "https://proxy.golang.org"
    ENV_GOPROXY = "GOPROXY"

    BATCH_SIZE = 5  # Existence probes per batch during major-version search
    QUERY_RETRY_MAX = 3  # Consecutive failing batches tolerated mid-search
    MAJOR_SEARCH_LIMIT = 1000  # Highest major probed before giving up
    MAX_WORKERS = 4  # Concurrent dependency resolutions during "all"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    GO_LIST_TIMEOUT = 120  # Timeout in seconds for "go list" invocations
