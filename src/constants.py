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
    EXIT_WARNINGS = 3
    VALIDATION_ERROR = 4
    CONFLICT = 5


class RepositoryKinds(Enum):
    """Repository kinds understood by the repository filter.

    Args:
        Enum (string): Repository kind identifiers.
    """

    MAVEN_CENTRAL = "maven-central"
    GOOGLE = "google"
    PLUGIN_PORTAL = "plugin-portal"
    CUSTOM = "custom"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    MAVEN_CENTRAL_URL = "https://repo1.maven.org/maven2"
    GOOGLE_MAVEN_URL = "https://dl.google.com/dl/android/maven2"
    PLUGIN_PORTAL_URL = "https://plugins.gradle.org/m2"
    METADATA_FILE = "maven-metadata.xml"
    PLUGIN_MARKER_SUFFIX = ".gradle.plugin"

    # Groups served by Google Maven when a google() repository declares no filters
    GOOGLE_GROUP_PREFIXES = ["google.", "android.", "androidx."]

    UNSTABLE_TOKENS = [
        "alpha", "beta", "rc", "cr", "milestone", "m", "dev", "snapshot",
        "preview", "ea", "eap", "pre", "canary",
    ]
    ALIAS_PREFIXES = ["org", "com", "net", "io", "dev"]

    CATALOG_RELATIVE_PATH = "gradle/libs.versions.toml"
    CATALOG_TABLES = ["versions", "libraries", "plugins"]
    CATALOG_PASSTHROUGH_TABLES = ["bundles", "metadata"]
    GRADLE_MARKERS = [
        "gradlew", "gradlew.bat",
        "settings.gradle", "settings.gradle.kts",
        "build.gradle", "build.gradle.kts",
    ]
    GRADLE_BUILD_FILES = [
        "settings.gradle.kts", "settings.gradle",
        "build.gradle.kts", "build.gradle",
    ]
    CONFIG_FILES = ["gvc.yml", ".gvc.yml", "gvc.yaml", ".gvc.yaml"]
    FORBIDDEN_ROOTS = ["/etc", "/sys", "/proc", "/dev", "/boot"]

    STABLE_ONLY = False
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "GVC_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    USER_AGENT = "gvc/0.3.0"

    BRANCH_PREFIX = "deps/update-"
    BRANCH_MAX_LENGTH = 50
    COMMIT_MESSAGE = "chore(deps): update dependencies to latest versions"

    # Extra repositories from the user config, as {url, kind, include} mappings
    EXTRA_REPOSITORIES: list = []
