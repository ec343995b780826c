"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    CONNECTION_ERROR = 2
    FILE_ERROR = 1
    EXIT_WARNINGS = 3


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for default configuration values; not intended to provide behavior.
    Runtime code reads these through ``cli_config.ManagerConfig``.
    """

    REGISTRY_URL_MAVEN = "https://search.maven.org/solrsearch/select"
    REPOSITORY_URL_MAVEN = "https://repo1.maven.org/maven2"
    USER_AGENT = "jardeps/0.1"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for every HTTP call
    SEARCH_ROWS = 20

    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 1.0
    DOWNLOAD_CHUNK_SIZE = 64 * 1024

    CACHE_DIR_NAME = ".jardeps"
    ENV_CACHE_DIR = "JARDEPS_CACHE_DIR"
    ENV_LOG_LEVEL = "JARDEPS_LOG_LEVEL"

    MANIFEST_FILE = "dependencies.json"
    LOCK_FILE = "dependencies.lock"
    LIBS_DIR = "libs"
    JAR_EXTENSION = ".jar"

    LOCK_TIMEOUT_SEC = 30.0
    STALE_LOCK_AGE_SEC = 600.0
    LOCK_POLL_INTERVAL_SEC = 0.05

    LARGE_ARTIFACT_BYTES = 100 * 1024 * 1024
    UNKNOWN_CHECKSUM = "unknown"

    # Alternative libraries that should not be installed side by side
    INCOMPATIBLE_ARTIFACTS = {
        "gson": ["json-simple"],
        "retrofit": ["volley"],
        "okhttp": ["httpclient"],
    }
