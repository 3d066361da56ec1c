"""Tests for Maven and Gradle descriptor parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from nsmigrate.constants import UNKNOWN_VERSION
from nsmigrate.dependency.graph_builder import (
    DependencyGraphError,
    DescriptorNotFoundError,
    build_from_project,
    find_descriptor,
    parse_gradle,
    parse_maven,
)
from nsmigrate.dependency.schemas import Artifact

MANAGED_POM = """<?xml version="1.0"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <parent>
    <groupId>com.acme</groupId>
    <artifactId>parent</artifactId>
    <version>7</version>
  </parent>
  <artifactId>child</artifactId>
  <dependencyManagement>
    <dependencies>
      <dependency>
        <groupId>javax.validation</groupId>
        <artifactId>validation-api</artifactId>
        <version>2.0.1.Final</version>
      </dependency>
    </dependencies>
  </dependencyManagement>
  <dependencies>
    <dependency>
      <groupId>javax.validation</groupId>
      <artifactId>validation-api</artifactId>
    </dependency>
    <dependency>
      <groupId>com.acme</groupId>
      <artifactId>extras</artifactId>
      <version>${missing.version}</version>
      <optional>true</optional>
    </dependency>
  </dependencies>
</project>
"""

BUILD_GRADLE = """plugins {
    id 'java'
}

group = 'com.acme'
version = '0.3.0'
def jaxbVersion = '2.3.1'

dependencies {
    implementation 'javax.xml.bind:jaxb-api:${jaxbVersion}'
    compileOnly "javax.servlet:javax.servlet-api:4.0.1"
    testImplementation("org.junit.jupiter:junit-jupiter:5.10.0")
    runtimeOnly 'com.h2database:h2:$h2Version'
}
"""


class TestMaven:
    def test_legacy_project(self, legacy_project: Path) -> None:
        graph = parse_maven(legacy_project / "pom.xml")
        root = Artifact(group="com.acme", name="shop", version="1.2.0")
        assert graph.contains(root)
        targets = {a.identifier: a for a in graph.dependencies_of(root)}
        assert set(targets) == {
            "javax.servlet:javax.servlet-api:4.0.1",
            "javax.persistence:javax.persistence-api:2.2",
            "org.apache.commons:commons-lang3:3.14.0",
        }
        assert targets["javax.servlet:javax.servlet-api:4.0.1"].scope == (
            "provided"
        )
        assert graph.edge_count == 3

    def test_parent_and_managed_versions(self, tmp_path: Path) -> None:
        pom = tmp_path / "pom.xml"
        pom.write_text(MANAGED_POM)
        graph = parse_maven(pom)
        root = Artifact(group="com.acme", name="child", version="7")
        deps = {a.name: a for a in graph.dependencies_of(root)}
        assert deps["validation-api"].version == "2.0.1.Final"
        # unresolvable property
        assert deps["extras"].version == UNKNOWN_VERSION
        optional = [
            e.optional for e in graph.edges if e.target.name == "extras"
        ]
        assert optional == [True]

    def test_malformed_xml_raises(self, tmp_path: Path) -> None:
        pom = tmp_path / "pom.xml"
        pom.write_text("<project><dependencies>")
        with pytest.raises(DependencyGraphError, match="Cannot parse"):
            parse_maven(pom)

    def test_missing_coordinates_raises(self, tmp_path: Path) -> None:
        pom = tmp_path / "pom.xml"
        pom.write_text("<project><version>1</version></project>")
        with pytest.raises(DependencyGraphError, match="groupId"):
            parse_maven(pom)


class TestGradle:
    def test_variables_and_scopes(self, tmp_path: Path) -> None:
        (tmp_path / "settings.gradle").write_text(
            "rootProject.name = 'billing'\n"
        )
        build = tmp_path / "build.gradle"
        build.write_text(BUILD_GRADLE)
        graph = parse_gradle(build)

        root = Artifact(group="com.acme", name="billing", version="0.3.0")
        assert graph.contains(root)
        deps = {a.name: a for a in graph.dependencies_of(root)}
        assert deps["jaxb-api"].version == "2.3.1"
        assert deps["javax.servlet-api"].scope == "provided"
        assert deps["junit-jupiter"].scope == "test"
        assert deps["h2"].scope == "runtime"
        assert deps["h2"].version == UNKNOWN_VERSION

    def test_project_name_falls_back_to_directory(
        self, tmp_path: Path
    ) -> None:
        project = tmp_path / "ledger"
        project.mkdir()
        build = project / "build.gradle.kts"
        build.write_text('dependencies { api("com.acme:core:1.0") }\n')
        graph = parse_gradle(build)
        names = {a.name for a in graph.nodes}
        assert names == {"ledger", "core"}


class TestDescriptorDiscovery:
    def test_root_descriptor_preferred(self, legacy_project: Path) -> None:
        assert find_descriptor(legacy_project) == legacy_project / "pom.xml"

    def test_nested_descriptor_found(self, tmp_path: Path) -> None:
        module = tmp_path / "service"
        module.mkdir()
        (module / "build.gradle").write_text("group = 'x'\n")
        assert find_descriptor(tmp_path) == module / "build.gradle"

    def test_skipped_directories_ignored(self, tmp_path: Path) -> None:
        target = tmp_path / "target"
        target.mkdir()
        (target / "pom.xml").write_text("<project/>")
        with pytest.raises(DescriptorNotFoundError):
            find_descriptor(tmp_path)

    def test_missing_root_raises(self, tmp_path: Path) -> None:
        with pytest.raises(DescriptorNotFoundError, match="not a directory"):
            build_from_project(tmp_path / "absent")

    def test_not_found_is_graph_error(self, tmp_path: Path) -> None:
        with pytest.raises(DependencyGraphError, match="No build descriptor"):
            build_from_project(tmp_path)

    def test_build_from_project_dispatches(
        self, legacy_project: Path
    ) -> None:
        graph = build_from_project(legacy_project)
        assert graph.node_count == 4
