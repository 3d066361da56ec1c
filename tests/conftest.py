"""Shared test fixtures: sample projects and SQLite store sessions."""

from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    async_sessionmaker,
    create_async_engine,
)

from nsmigrate.store.models import Base

LEGACY_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.acme</groupId>
  <artifactId>shop</artifactId>
  <version>1.2.0</version>
  <properties>
    <servlet.version>4.0.1</servlet.version>
  </properties>
  <dependencies>
    <dependency>
      <groupId>javax.servlet</groupId>
      <artifactId>javax.servlet-api</artifactId>
      <version>${servlet.version}</version>
      <scope>provided</scope>
    </dependency>
    <dependency>
      <groupId>javax.persistence</groupId>
      <artifactId>javax.persistence-api</artifactId>
      <version>2.2</version>
    </dependency>
    <dependency>
      <groupId>org.apache.commons</groupId>
      <artifactId>commons-lang3</artifactId>
      <version>3.14.0</version>
    </dependency>
  </dependencies>
</project>
"""

LEGACY_SERVLET = """package com.acme.shop;

import javax.servlet.http.HttpServlet;
import javax.servlet.http.HttpServletRequest;
import javax.annotation.processing.Processor;

public class CartServlet extends HttpServlet {
}
"""

LEGACY_ENTITY = """package com.acme.shop;

import javax.persistence.Entity;
import javax.persistence.Id;

@Entity
public class Item {
    @Id
    private Long id;
}
"""

PLAIN_SOURCE = """package com.acme.shop;

import java.util.List;

public class Util {
}
"""

LEGACY_PERSISTENCE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<persistence xmlns="http://xmlns.jcp.org/xml/ns/persistence"
    xsi:schemaLocation="http://xmlns.jcp.org/xml/ns/persistence
        http://xmlns.jcp.org/xml/ns/persistence/persistence_2_2.xsd"
    version="2.2">
  <persistence-unit name="shop"/>
</persistence>
"""


@pytest.fixture
def legacy_project(tmp_path: Path) -> Path:
    """A small Maven project still on the old namespace."""
    root = tmp_path / "shop"
    java = root / "src" / "main" / "java" / "com" / "acme" / "shop"
    resources = root / "src" / "main" / "resources" / "META-INF"
    java.mkdir(parents=True)
    resources.mkdir(parents=True)
    (root / "pom.xml").write_text(LEGACY_POM)
    (java / "CartServlet.java").write_text(LEGACY_SERVLET)
    (java / "Item.java").write_text(LEGACY_ENTITY)
    (java / "Util.java").write_text(PLAIN_SOURCE)
    (resources / "persistence.xml").write_text(LEGACY_PERSISTENCE_XML)
    # build output is never scanned
    target = root / "target" / "classes"
    target.mkdir(parents=True)
    (target / "Stale.java").write_text(LEGACY_SERVLET)
    return root


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path):
    """File-backed engine per test for stores that own their sessions."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()
