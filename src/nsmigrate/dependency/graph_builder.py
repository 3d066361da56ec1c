"""Build a DependencyGraph from a Maven or Gradle build descriptor."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from xml.etree import ElementTree

from nsmigrate.constants import (
    BUILD_DESCRIPTORS,
    DEFAULT_SKIP_DIRECTORIES,
    UNKNOWN_VERSION,
)
from nsmigrate.dependency.schemas import Artifact, Dependency, DependencyGraph

logger = logging.getLogger(__name__)

_PROPERTY_RE = re.compile(r"\$\{([^}]+)\}")
_MAX_PROPERTY_DEPTH = 5

_GRADLE_DEP_RE = re.compile(
    r"\b(testImplementation|testRuntimeOnly|testCompileOnly|testRuntime"
    r"|compileOnly|runtimeOnly|implementation|api|compile|runtime)\b"
    r"\s*\(?\s*['\"]([^:'\"\s]+):([^:'\"\s]+):([^'\"\s]+)['\"]"
)
_GRADLE_ASSIGN_RE = re.compile(
    r"^\s*(?:def\s+|val\s+|var\s+|ext\.)?([A-Za-z_][\w.]*)\s*=\s*"
    r"['\"]([^'\"]+)['\"]",
    re.MULTILINE,
)
_GRADLE_VAR_RE = re.compile(r"\$\{?([A-Za-z_][\w.]*)\}?")


class DependencyGraphError(Exception):
    """A build descriptor is missing or cannot be parsed."""


class DescriptorNotFoundError(DependencyGraphError):
    """No recognised build descriptor exists under the project root."""


def build_from_project(
    root: Path | str,
    skip_dirs: set[str] | None = None,
) -> DependencyGraph:
    """Parse the project's build descriptor into a dependency graph.

    Looks for ``pom.xml``, ``build.gradle`` and ``build.gradle.kts``
    in the root first, then anywhere below it.
    """
    descriptor = find_descriptor(Path(root), skip_dirs)
    logger.info("event=descriptor_found path=%s", descriptor)
    if descriptor.name == "pom.xml":
        return parse_maven(descriptor)
    return parse_gradle(descriptor)


def find_descriptor(
    root: Path, skip_dirs: set[str] | None = None
) -> Path:
    if not root.is_dir():
        msg = f"Project root is not a directory: {root}"
        raise DescriptorNotFoundError(msg)

    for name in BUILD_DESCRIPTORS:
        candidate = root / name
        if candidate.is_file():
            return candidate

    skips = (
        skip_dirs if skip_dirs is not None else set(DEFAULT_SKIP_DIRECTORIES)
    )
    for name in BUILD_DESCRIPTORS:
        for candidate in sorted(root.rglob(name)):
            rel_parts = candidate.relative_to(root).parts[:-1]
            if any(part in skips for part in rel_parts):
                continue
            if candidate.is_file():
                return candidate

    msg = (
        f"No build descriptor ({', '.join(BUILD_DESCRIPTORS)}) found "
        f"under {root}; point at the directory containing the build file"
    )
    raise DescriptorNotFoundError(msg)


# ── Maven ────────────────────────────────────────────────


def _local(tag: str) -> str:
    """Strip an ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1]


def _child(
    elem: ElementTree.Element, name: str
) -> ElementTree.Element | None:
    for child in elem:
        if _local(child.tag) == name:
            return child
    return None


def _child_text(
    elem: ElementTree.Element | None, name: str
) -> str | None:
    if elem is None:
        return None
    child = _child(elem, name)
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text or None


def _resolve(value: str | None, props: dict[str, str]) -> str | None:
    if value is None:
        return None
    for _ in range(_MAX_PROPERTY_DEPTH):
        if "${" not in value:
            break
        value = _PROPERTY_RE.sub(
            lambda m: props.get(m.group(1), m.group(0)), value
        )
    if "${" in value:
        return None
    return value


def parse_maven(path: Path) -> DependencyGraph:
    try:
        tree = ElementTree.parse(path)
    except (ElementTree.ParseError, OSError) as exc:
        msg = f"Cannot parse Maven descriptor {path}: {exc}"
        raise DependencyGraphError(msg) from exc

    project = tree.getroot()
    parent = _child(project, "parent")

    group = _child_text(project, "groupId") or _child_text(parent, "groupId")
    name = _child_text(project, "artifactId")
    version = _child_text(project, "version") or _child_text(
        parent, "version"
    )
    if not group or not name:
        msg = f"Maven descriptor {path} has no groupId/artifactId"
        raise DependencyGraphError(msg)

    props: dict[str, str] = {}
    properties = _child(project, "properties")
    if properties is not None:
        for prop in properties:
            if prop.text is not None:
                props[_local(prop.tag)] = prop.text.strip()
    props.setdefault("project.groupId", group)
    props.setdefault("project.artifactId", name)
    if version:
        props.setdefault("project.version", version)

    root_artifact = Artifact(
        group=group,
        name=name,
        version=_resolve(version, props) or UNKNOWN_VERSION,
    )
    graph = DependencyGraph()
    graph.add_node(root_artifact)

    managed: dict[str, str] = {}
    management = _child(project, "dependencyManagement")
    managed_deps = (
        _child(management, "dependencies") if management is not None else None
    )
    if managed_deps is not None:
        for dep in managed_deps:
            g = _resolve(_child_text(dep, "groupId"), props)
            a = _resolve(_child_text(dep, "artifactId"), props)
            v = _resolve(_child_text(dep, "version"), props)
            if g and a and v:
                managed[f"{g}:{a}"] = v

    dependencies = _child(project, "dependencies")
    if dependencies is None:
        return graph

    for dep in dependencies:
        if _local(dep.tag) != "dependency":
            continue
        g = _resolve(_child_text(dep, "groupId"), props)
        a = _resolve(_child_text(dep, "artifactId"), props)
        if not g or not a:
            logger.debug("event=maven_dependency_skipped path=%s", path)
            continue
        v = (
            _resolve(_child_text(dep, "version"), props)
            or managed.get(f"{g}:{a}")
            or UNKNOWN_VERSION
        )
        scope = _child_text(dep, "scope") or "compile"
        optional = (_child_text(dep, "optional") or "").lower() == "true"
        target = Artifact(group=g, name=a, version=v, scope=scope)
        graph.add_edge(
            Dependency(
                source=root_artifact,
                target=target,
                scope=scope,
                optional=optional,
            )
        )

    logger.info(
        "event=maven_parsed path=%s nodes=%d edges=%d",
        path,
        graph.node_count,
        graph.edge_count,
    )
    return graph


# ── Gradle ───────────────────────────────────────────────


def _gradle_scope(configuration: str) -> str:
    if configuration.startswith("test"):
        return "test"
    if configuration.startswith("runtime"):
        return "runtime"
    if configuration == "compileOnly":
        return "provided"
    return "compile"


def _gradle_project_name(path: Path, content: str) -> str:
    for settings_name in ("settings.gradle", "settings.gradle.kts"):
        settings_file = path.parent / settings_name
        if settings_file.is_file():
            m = re.search(
                r"rootProject\.name\s*=\s*['\"]([^'\"]+)['\"]",
                settings_file.read_text(encoding="utf-8", errors="replace"),
            )
            if m:
                return m.group(1)
    m = re.search(
        r"(?:archivesBaseName|baseName)\s*=\s*['\"]([^'\"]+)['\"]", content
    )
    if m:
        return m.group(1)
    return path.parent.name or "project"


def parse_gradle(path: Path) -> DependencyGraph:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Cannot read Gradle descriptor {path}: {exc}"
        raise DependencyGraphError(msg) from exc

    variables = {
        m.group(1): m.group(2) for m in _GRADLE_ASSIGN_RE.finditer(content)
    }

    def _expand(value: str) -> str:
        return _GRADLE_VAR_RE.sub(
            lambda m: variables.get(m.group(1), m.group(0)), value
        )

    root_artifact = Artifact(
        group=variables.get("group", "unspecified"),
        name=_gradle_project_name(path, content),
        version=variables.get("version", UNKNOWN_VERSION),
    )
    graph = DependencyGraph()
    graph.add_node(root_artifact)

    for m in _GRADLE_DEP_RE.finditer(content):
        configuration, group, name, version = m.groups()
        version = _expand(version)
        if "$" in version:
            version = UNKNOWN_VERSION
        scope = _gradle_scope(configuration)
        graph.add_edge(
            Dependency(
                source=root_artifact,
                target=Artifact(
                    group=group, name=name, version=version, scope=scope
                ),
                scope=scope,
            )
        )

    logger.info(
        "event=gradle_parsed path=%s nodes=%d edges=%d",
        path,
        graph.node_count,
        graph.edge_count,
    )
    return graph
