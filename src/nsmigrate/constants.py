"""Shared constants: single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so downstream code (JSON, SQL,
CLI output) works unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class Namespace(StrEnum):
    """Classification outcome for an artifact."""

    OLD_NAMESPACE = "old_namespace"
    NEW_NAMESPACE = "new_namespace"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class BlockerType(StrEnum):
    NO_EQUIVALENT_AVAILABLE = "no_equivalent_available"


class RecommendationSource(StrEnum):
    """Provenance of a version recommendation."""

    KNOWN_EQUIVALENT = "known_equivalent"
    FRAMEWORK_UPGRADE = "framework_upgrade"
    METADATA_SEARCH = "metadata_search"
    NO_EQUIVALENT_FOUND = "no_equivalent_found"


class ActionType(StrEnum):
    """Kind of change planned for a single file."""

    UPDATE_IMPORTS = "update_imports"
    UPDATE_PACKAGE = "update_package"
    UPDATE_XML_NAMESPACE = "update_xml_namespace"
    UPDATE_DEPENDENCY = "update_dependency"
    UPDATE_CLASS_REFERENCES = "update_class_references"


class FileCategory(StrEnum):
    """Concern a project file belongs to when planning phases."""

    BUILD = "build"
    SOURCE = "source"
    CONFIG = "config"
    RESOURCE = "resource"


class MigrationState(StrEnum):
    """Per-project migration state, derived from statistics."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class FailureKind(StrEnum):
    """Typed reason a single file failed inside a batch."""

    FILE_NOT_FOUND = "file_not_found"
    IO_ERROR = "io_error"
    RECIPE_ERROR = "recipe_error"
    VALIDATION_FAILED = "validation_failed"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ChangeType(StrEnum):
    IMPORT_CHANGE = "import_change"
    PACKAGE_CHANGE = "package_change"
    CLASS_REFERENCE_CHANGE = "class_reference_change"
    XML_NAMESPACE_CHANGE = "xml_namespace_change"
    DEPENDENCY_CHANGE = "dependency_change"


class SafetyLevel(StrEnum):
    """How safe a recipe is to apply without review."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ValidationSeverity(StrEnum):
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationStatus(StrEnum):
    PASSED = "passed"
    WARNINGS = "warnings"
    FAILED = "failed"


class RollbackStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"


class VerificationStatus(StrEnum):
    """Outcome of running a built artifact in an isolated process."""

    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ErrorType(StrEnum):
    """JVM failure family recognised in captured output."""

    CLASS_NOT_FOUND = "class_not_found"
    NO_CLASS_DEF_FOUND = "no_class_def_found"
    LINKAGE_ERROR = "linkage_error"
    NO_SUCH_METHOD = "no_such_method"
    NO_SUCH_FIELD = "no_such_field"
    ILLEGAL_ACCESS = "illegal_access"
    CLASS_CAST = "class_cast"
    OTHER = "other"


class ErrorCategory(StrEnum):
    """Likely root cause of a runtime error."""

    NAMESPACE_MIGRATION = "namespace_migration"
    CLASSPATH_ISSUE = "classpath_issue"
    BINARY_INCOMPATIBILITY = "binary_incompatibility"
    CONFIGURATION_ERROR = "configuration_error"
    UNKNOWN = "unknown"


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BreakingChangeKind(StrEnum):
    CLASS_REMOVED = "class_removed"
    PACKAGE_REMOVED = "package_removed"


# ── Namespace Roots ──────────────────────────────────────

OLD_ROOT = "javax"
NEW_ROOT = "jakarta"

# ── Classification Tables ────────────────────────────────

# group:name → first release that ships the new package names.
# Releases below the minimum still carry old packages under new
# coordinates (e.g. jakarta.xml.bind-api 2.x).
NEW_NAMESPACE_ARTIFACTS: dict[str, str] = {
    "jakarta.servlet:jakarta.servlet-api": "5.0.0",
    "jakarta.persistence:jakarta.persistence-api": "3.0.0",
    "jakarta.validation:jakarta.validation-api": "3.0.0",
    "jakarta.annotation:jakarta.annotation-api": "2.0.0",
    "jakarta.transaction:jakarta.transaction-api": "2.0.0",
    "jakarta.ws.rs:jakarta.ws.rs-api": "3.0.0",
    "jakarta.xml.bind:jakarta.xml.bind-api": "3.0.0",
    "jakarta.inject:jakarta.inject-api": "2.0.0",
    "jakarta.enterprise:jakarta.enterprise.cdi-api": "3.0.0",
    "jakarta.faces:jakarta.faces-api": "3.0.0",
    "jakarta.mail:jakarta.mail-api": "2.0.0",
    "jakarta.jms:jakarta.jms-api": "3.0.0",
    "jakarta.json:jakarta.json-api": "2.0.0",
    "jakarta.websocket:jakarta.websocket-api": "2.0.0",
    "jakarta.ejb:jakarta.ejb-api": "4.0.0",
    "jakarta.el:jakarta.el-api": "4.0.0",
    "jakarta.activation:jakarta.activation-api": "2.0.0",
    "jakarta.platform:jakarta.jakartaee-api": "9.0.0",
    "jakarta.platform:jakarta.jakartaee-web-api": "9.0.0",
}

OLD_NAMESPACE_ARTIFACTS: frozenset[str] = frozenset({
    "javax.servlet:javax.servlet-api",
    "javax.servlet:servlet-api",
    "javax.persistence:javax.persistence-api",
    "javax.persistence:persistence-api",
    "javax.validation:validation-api",
    "javax.annotation:javax.annotation-api",
    "javax.transaction:javax.transaction-api",
    "javax.transaction:jta",
    "javax.ws.rs:javax.ws.rs-api",
    "javax.xml.bind:jaxb-api",
    "javax.inject:javax.inject",
    "javax.enterprise:cdi-api",
    "javax.faces:javax.faces-api",
    "javax.mail:javax.mail-api",
    "com.sun.mail:javax.mail",
    "javax.jms:javax.jms-api",
    "javax.json:javax.json-api",
    "javax.websocket:javax.websocket-api",
    "javax.ejb:javax.ejb-api",
    "javax.el:javax.el-api",
    "javax.activation:activation",
    "javax.activation:javax.activation-api",
    "javax:javaee-api",
    "javax:javaee-web-api",
})

# old group:name → new group:name:version
KNOWN_EQUIVALENTS: dict[str, str] = {
    "javax.servlet:javax.servlet-api": (
        "jakarta.servlet:jakarta.servlet-api:6.0.0"
    ),
    "javax.servlet:servlet-api": "jakarta.servlet:jakarta.servlet-api:6.0.0",
    "javax.persistence:javax.persistence-api": (
        "jakarta.persistence:jakarta.persistence-api:3.1.0"
    ),
    "javax.persistence:persistence-api": (
        "jakarta.persistence:jakarta.persistence-api:3.1.0"
    ),
    "javax.validation:validation-api": (
        "jakarta.validation:jakarta.validation-api:3.0.2"
    ),
    "javax.annotation:javax.annotation-api": (
        "jakarta.annotation:jakarta.annotation-api:2.1.1"
    ),
    "javax.transaction:javax.transaction-api": (
        "jakarta.transaction:jakarta.transaction-api:2.0.1"
    ),
    "javax.transaction:jta": (
        "jakarta.transaction:jakarta.transaction-api:2.0.1"
    ),
    "javax.ws.rs:javax.ws.rs-api": "jakarta.ws.rs:jakarta.ws.rs-api:3.1.0",
    "javax.xml.bind:jaxb-api": "jakarta.xml.bind:jakarta.xml.bind-api:4.0.0",
    "javax.inject:javax.inject": "jakarta.inject:jakarta.inject-api:2.0.1",
    "javax.enterprise:cdi-api": (
        "jakarta.enterprise:jakarta.enterprise.cdi-api:4.0.1"
    ),
    "javax.faces:javax.faces-api": "jakarta.faces:jakarta.faces-api:4.0.1",
    "javax.mail:javax.mail-api": "jakarta.mail:jakarta.mail-api:2.1.2",
    "com.sun.mail:javax.mail": "org.eclipse.angus:angus-mail:2.0.2",
    "javax.jms:javax.jms-api": "jakarta.jms:jakarta.jms-api:3.1.0",
    "javax.json:javax.json-api": "jakarta.json:jakarta.json-api:2.1.2",
    "javax.websocket:javax.websocket-api": (
        "jakarta.websocket:jakarta.websocket-api:2.1.1"
    ),
    "javax.ejb:javax.ejb-api": "jakarta.ejb:jakarta.ejb-api:4.0.1",
    "javax.el:javax.el-api": "jakarta.el:jakarta.el-api:5.0.1",
    "javax.activation:activation": (
        "jakarta.activation:jakarta.activation-api:2.1.2"
    ),
    "javax.activation:javax.activation-api": (
        "jakarta.activation:jakarta.activation-api:2.1.2"
    ),
    "javax:javaee-api": "jakarta.platform:jakarta.jakartaee-api:10.0.0",
    "javax:javaee-web-api": (
        "jakarta.platform:jakarta.jakartaee-web-api:10.0.0"
    ),
}

# Old-namespace APIs pruned from the platform with no successor.
DEFUNCT_API_PATTERNS: tuple[str, ...] = (
    "javax.xml.rpc",
    "javax.xml.registry",
    "javax.management.j2ee",
    "javax.enterprise.deploy",
    "javax.jws",
)

# ── Source Rewriting ─────────────────────────────────────

# Sub-packages of the old root that moved to the new root. JDK-owned
# packages (javax.sql, javax.crypto, javax.swing, ...) stay put.
MIGRATED_PACKAGES: tuple[str, ...] = (
    "activation",
    "annotation",
    "batch",
    "decorator",
    "ejb",
    "el",
    "enterprise",
    "faces",
    "inject",
    "interceptor",
    "jms",
    "json",
    "mail",
    "persistence",
    "resource",
    "security.auth.message",
    "security.enterprise",
    "security.jacc",
    "servlet",
    "transaction",
    "validation",
    "websocket",
    "ws.rs",
    "xml.bind",
    "xml.soap",
    "xml.ws",
)

# javax.annotation.processing belongs to the JDK.
UNMIGRATED_SUBPACKAGES: tuple[str, ...] = ("annotation.processing",)

XML_NAMESPACE_MAPPINGS: dict[str, str] = {
    "http://xmlns.jcp.org/xml/ns/javaee": (
        "https://jakarta.ee/xml/ns/jakartaee"
    ),
    "http://java.sun.com/xml/ns/javaee": (
        "https://jakarta.ee/xml/ns/jakartaee"
    ),
    "http://xmlns.jcp.org/xml/ns/persistence": (
        "https://jakarta.ee/xml/ns/persistence"
    ),
    "http://java.sun.com/xml/ns/persistence": (
        "https://jakarta.ee/xml/ns/persistence"
    ),
    "http://java.sun.com/xml/ns/j2ee": "https://jakarta.ee/xml/ns/jakartaee",
    "http://java.sun.com/xml/ns/jee": "https://jakarta.ee/xml/ns/jakartaee",
    "http://java.sun.com/xml/ns/jms": "https://jakarta.ee/xml/ns/jms",
    "http://java.sun.com/xml/ns/jta": "https://jakarta.ee/xml/ns/jta",
    "http://xmlns.jcp.org/xml/ns/validation/configuration": (
        "https://jakarta.ee/xml/ns/validation/configuration"
    ),
    "http://jboss.org/xml/ns/javax/validation/configuration": (
        "https://jakarta.ee/xml/ns/validation/configuration"
    ),
}

NEW_XML_NAMESPACE_PREFIX = "https://jakarta.ee/xml/ns/"

# ── Project Files ────────────────────────────────────────

BUILD_DESCRIPTORS: tuple[str, ...] = (
    "pom.xml",
    "build.gradle",
    "build.gradle.kts",
)

NAMESPACE_DESCRIPTOR_FILES: frozenset[str] = frozenset({
    "persistence.xml",
    "web.xml",
    "web-fragment.xml",
    "faces-config.xml",
    "beans.xml",
    "ejb-jar.xml",
    "application.xml",
    "validation.xml",
    "orm.xml",
})

SOURCE_EXTENSIONS: frozenset[str] = frozenset({
    ".java",
    ".kt",
    ".groovy",
    ".scala",
})

RESOURCE_EXTENSIONS: frozenset[str] = frozenset({
    ".jsp",
    ".jspf",
    ".tag",
    ".xhtml",
    ".properties",
    ".xml",
})

# Files expected to be fully migrated once recipes have run.
FULLY_MIGRATED_EXTENSIONS: frozenset[str] = frozenset({
    ".java",
    ".kt",
    ".groovy",
    ".scala",
    ".jsp",
    ".xml",
    ".kts",
    ".gradle",
})

DEFAULT_SKIP_DIRECTORIES: tuple[str, ...] = (
    "target",
    "build",
    ".git",
    "node_modules",
    ".gradle",
    ".mvn",
    ".idea",
    ".vscode",
    "out",
    "bin",
)

# ── Risk Weights ─────────────────────────────────────────


class RiskWeight:
    """Weights for the shared risk score; they sum to 1.0."""

    OLD_RATIO = 0.5
    MIXED = 0.2
    BLOCKERS = 0.3


RISK_LOW_BELOW = 0.3
RISK_MEDIUM_BELOW = 0.7
BLOCKER_SATURATION = 5  # blockers at which blocker pressure maxes out
FILE_VOLUME_SATURATION = 500  # files at which plan volume risk maxes out


READINESS_HIGH = 0.8
READINESS_MODERATE = 0.5


class BlockerConfidence:
    DEFUNCT = 0.9
    UNRESOLVED = 0.6


class RecommendationConfidence:
    KNOWN_EQUIVALENT = 0.95
    FRAMEWORK_UPGRADE = 0.85
    METADATA_SEARCH = 0.5
    NONE = 0.0


# ── Plan Durations (minutes) ─────────────────────────────

PHASE_BASE_MINUTES = 10
FILE_MINUTES: dict[FileCategory, float] = {
    FileCategory.BUILD: 15.0,
    FileCategory.SOURCE: 2.0,
    FileCategory.CONFIG: 5.0,
    FileCategory.RESOURCE: 1.0,
}

# ── Circuit Breaker Configuration ────────────────────────

CB_SEARCH_FAILURE_THRESHOLD = 3
CB_SEARCH_RECOVERY_TIMEOUT = 60

# ── Retry Strategy ───────────────────────────────────────

RETRY_MAX_ATTEMPTS = 3
RETRY_INITIAL_WAIT = 1
RETRY_MAX_WAIT = 10

# ── Misc ─────────────────────────────────────────────────

METADATA_SEARCH_ROWS = 20
UNKNOWN_VERSION = "unknown"
ERROR_TRUNCATION_CHARS = 200
