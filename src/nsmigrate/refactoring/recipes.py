"""Recipe library and the built-in text recipe runner.

A runner is a pure function of its inputs from the executor's point of
view: content in, :class:`RefactoringChanges` out, no shared state.
Recipes that do not apply to a file's type are no-ops, and re-running
recipes over migrated content produces no changes.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import PurePath
from typing import Protocol

from nsmigrate.constants import (
    BUILD_DESCRIPTORS,
    KNOWN_EQUIVALENTS,
    MIGRATED_PACKAGES,
    NEW_ROOT,
    OLD_ROOT,
    UNMIGRATED_SUBPACKAGES,
    XML_NAMESPACE_MAPPINGS,
    ChangeType,
    FileCategory,
    SafetyLevel,
)
from nsmigrate.refactoring.schemas import (
    ChangeDetail,
    Recipe,
    RefactoringChanges,
)

logger = logging.getLogger(__name__)

ADD_NAMESPACE = "AddJakartaNamespace"
UPDATE_PERSISTENCE_XML = "UpdatePersistenceXml"
UPDATE_WEB_XML = "UpdateWebXml"
UPDATE_XML_NAMESPACES = "UpdateXmlNamespaces"
UPDATE_BUILD_DEPENDENCIES = "UpdateBuildDependencies"

DEFAULT_RECIPES: tuple[Recipe, ...] = (
    Recipe(
        name=ADD_NAMESPACE,
        description="Rewrite old-root package references to the new root",
        safety=SafetyLevel.HIGH,
    ),
    Recipe(
        name=UPDATE_PERSISTENCE_XML,
        description="Update persistence.xml namespace, schema and version",
        safety=SafetyLevel.HIGH,
        file_suffixes=("persistence.xml", "orm.xml"),
    ),
    Recipe(
        name=UPDATE_WEB_XML,
        description="Update web.xml namespace, schema and version",
        safety=SafetyLevel.MEDIUM,
        file_suffixes=("web.xml", "web-fragment.xml"),
    ),
    Recipe(
        name=UPDATE_XML_NAMESPACES,
        description="Update descriptor XML namespace URIs",
        safety=SafetyLevel.MEDIUM,
        file_suffixes=(".xml",),
    ),
    Recipe(
        name=UPDATE_BUILD_DEPENDENCIES,
        description="Replace old-namespace coordinates in build descriptors",
        safety=SafetyLevel.MEDIUM,
        file_suffixes=BUILD_DESCRIPTORS,
    ),
)

_CATEGORY_RECIPES: dict[FileCategory, tuple[str, ...]] = {
    FileCategory.BUILD: (UPDATE_BUILD_DEPENDENCIES,),
    FileCategory.SOURCE: (ADD_NAMESPACE,),
    FileCategory.CONFIG: (
        UPDATE_PERSISTENCE_XML,
        UPDATE_WEB_XML,
        UPDATE_XML_NAMESPACES,
        ADD_NAMESPACE,
    ),
    FileCategory.RESOURCE: (ADD_NAMESPACE,),
}


class UnknownRecipeError(KeyError):
    """A recipe name is not registered in the library."""


class RecipeLibrary:
    def __init__(self, recipes: Iterable[Recipe] = DEFAULT_RECIPES) -> None:
        self._recipes = {r.name: r for r in recipes}

    def get(self, name: str) -> Recipe | None:
        return self._recipes.get(name)

    def names(self) -> list[str]:
        return list(self._recipes)

    def list_recipes(self) -> list[Recipe]:
        return list(self._recipes.values())

    def resolve(self, names: Iterable[str]) -> list[Recipe]:
        resolved: list[Recipe] = []
        for name in names:
            recipe = self._recipes.get(name)
            if recipe is None:
                raise UnknownRecipeError(name)
            resolved.append(recipe)
        return resolved

    def for_category(self, category: FileCategory) -> list[str]:
        return [
            n for n in _CATEGORY_RECIPES[category] if n in self._recipes
        ]


class RecipeRunner(Protocol):
    def apply(
        self, content: str, recipes: Sequence[str], file_path: str
    ) -> RefactoringChanges: ...


@dataclass(frozen=True)
class _Transform:
    recipe: Recipe
    change_type: ChangeType
    fn: Callable[[str], str]


def _package_pattern(
    old_root: str,
    packages: Iterable[str],
    excluded: Iterable[str],
) -> re.Pattern[str]:
    alternation = "|".join(
        re.escape(p) for p in sorted(packages, key=len, reverse=True)
    )
    negatives = "".join(
        rf"(?!{re.escape(e)}\b)" for e in excluded
    )
    return re.compile(
        rf"(?<![\w.]){re.escape(old_root)}\.{negatives}(?=(?:{alternation})\b)"
    )


def _replace_all(content: str, mapping: Mapping[str, str]) -> str:
    for old in sorted(mapping, key=len, reverse=True):
        content = content.replace(old, mapping[old])
    return content


_MAVEN_DEPENDENCY_RE = re.compile(r"<dependency>.*?</dependency>", re.DOTALL)
_MAVEN_GROUP_RE = re.compile(r"<groupId>\s*([^<\s]+)\s*</groupId>")
_MAVEN_ARTIFACT_RE = re.compile(r"<artifactId>\s*([^<\s]+)\s*</artifactId>")
_MAVEN_VERSION_RE = re.compile(r"<version>\s*[^<\s]+\s*</version>")
_MAVEN_VERSION_REF_RE = re.compile(r"<version>\s*\$\{([^}\s]+)\}\s*</version>")
_GRADLE_COORDINATE_RE = re.compile(
    r"(['\"])([^:'\"\s]+):([^:'\"\s]+):([^'\"\s]+)\1"
)
_GRADLE_VERSION_REF_RE = re.compile(r"\$\{?([A-Za-z_]\w*)\}?")


def _maven_property_re(prop: str) -> re.Pattern[str]:
    tag = re.escape(prop)
    return re.compile(rf"(<{tag}>)\s*[^<]*?\s*(</{tag}>)")


def _gradle_reference_re(var: str) -> re.Pattern[str]:
    return re.compile(rf"\$\{{?{re.escape(var)}\b")


def _gradle_variable_re(var: str) -> re.Pattern[str]:
    return re.compile(
        rf"^(\s*(?:ext\.|def |val |var )?{re.escape(var)}\s*=\s*)"
        r"(['\"])[^'\"\n]*\2",
        re.MULTILINE,
    )


def _owns_property(
    content: str,
    versions: set[str],
    mapped_uses: int,
    total_uses: int,
    definition: re.Pattern[str],
) -> bool:
    """A version property may be bumped in place only when every reader
    is a migrated dependency agreeing on one target version and the
    property is defined in this file. Otherwise the version is inlined.
    """
    return (
        len(versions) == 1
        and mapped_uses == total_uses
        and definition.search(content) is not None
    )


def _line_change_type(line: str, default: ChangeType) -> ChangeType:
    if default != ChangeType.IMPORT_CHANGE:
        return default
    stripped = line.lstrip()
    if stripped.startswith("import "):
        return ChangeType.IMPORT_CHANGE
    if stripped.startswith("package "):
        return ChangeType.PACKAGE_CHANGE
    return ChangeType.CLASS_REFERENCE_CHANGE


def _diff_lines(
    before: str, after: str, recipe: str, change_type: ChangeType
) -> list[ChangeDetail]:
    details: list[ChangeDetail] = []
    old_lines = before.splitlines()
    new_lines = after.splitlines()
    for idx, (old, new) in enumerate(zip(old_lines, new_lines, strict=False)):
        if old != new:
            details.append(
                ChangeDetail(
                    line_number=idx + 1,
                    original_line=old,
                    new_line=new,
                    description=f"{recipe}: {old.strip()} -> {new.strip()}",
                    change_type=_line_change_type(old, change_type),
                )
            )
    return details


class TextRecipeRunner:
    """Regex and literal rewriting implementation of the standard recipes.

    Line structure is preserved: no recipe adds or removes newlines.
    """

    def __init__(
        self,
        *,
        old_root: str = OLD_ROOT,
        new_root: str = NEW_ROOT,
        packages: Iterable[str] = MIGRATED_PACKAGES,
        excluded_packages: Iterable[str] = UNMIGRATED_SUBPACKAGES,
        xml_namespaces: Mapping[str, str] | None = None,
        known_equivalents: Mapping[str, str] | None = None,
        library: RecipeLibrary | None = None,
    ) -> None:
        self.old_root = old_root
        self.new_root = new_root
        self._package_re = _package_pattern(
            old_root, packages, excluded_packages
        )
        self._xml_namespaces = dict(
            XML_NAMESPACE_MAPPINGS
            if xml_namespaces is None
            else xml_namespaces
        )
        self._equivalents = dict(
            KNOWN_EQUIVALENTS
            if known_equivalents is None
            else known_equivalents
        )
        self.library = library or RecipeLibrary()
        self._transforms = self._build_transforms()

    def _build_transforms(self) -> dict[str, _Transform]:
        table: dict[str, tuple[ChangeType, Callable[[str], str]]] = {
            ADD_NAMESPACE: (ChangeType.IMPORT_CHANGE, self._add_namespace),
            UPDATE_PERSISTENCE_XML: (
                ChangeType.XML_NAMESPACE_CHANGE,
                self._update_persistence_xml,
            ),
            UPDATE_WEB_XML: (
                ChangeType.XML_NAMESPACE_CHANGE,
                self._update_web_xml,
            ),
            UPDATE_XML_NAMESPACES: (
                ChangeType.XML_NAMESPACE_CHANGE,
                self._update_xml_namespaces,
            ),
            UPDATE_BUILD_DEPENDENCIES: (
                ChangeType.DEPENDENCY_CHANGE,
                self._update_build_dependencies,
            ),
        }
        transforms: dict[str, _Transform] = {}
        for recipe in self.library.list_recipes():
            entry = table.get(recipe.name)
            if entry is not None:
                transforms[recipe.name] = _Transform(recipe, *entry)
        return transforms

    def apply(
        self, content: str, recipes: Sequence[str], file_path: str
    ) -> RefactoringChanges:
        """Run ``recipes`` in order; raises UnknownRecipeError on bad names."""
        file_name = PurePath(file_path).name
        is_build_file = file_name in BUILD_DESCRIPTORS

        current = content
        details: list[ChangeDetail] = []
        applied: list[str] = []
        for name in recipes:
            transform = self._transforms.get(name)
            if transform is None:
                raise UnknownRecipeError(name)
            if not transform.recipe.applies_to(file_name):
                continue
            # build descriptors only change through dependency recipes
            if is_build_file and name != UPDATE_BUILD_DEPENDENCIES:
                continue
            updated = transform.fn(current)
            if updated != current:
                details.extend(
                    _diff_lines(current, updated, name, transform.change_type)
                )
                applied.append(name)
                current = updated

        if applied:
            logger.debug(
                "event=recipes_applied file=%s recipes=%s changes=%d",
                file_path,
                ",".join(applied),
                len(details),
            )
        return RefactoringChanges(
            file_path=file_path,
            original_content=content,
            refactored_content=current,
            changes=details,
            applied_recipes=applied,
        )

    # ── Transforms ───────────────────────────────────────

    def _add_namespace(self, content: str) -> str:
        return self._package_re.sub(f"{self.new_root}.", content)

    def _update_xml_namespaces(self, content: str) -> str:
        return _replace_all(content, self._xml_namespaces)

    def _update_persistence_xml(self, content: str) -> str:
        persistence = {
            k: v for k, v in self._xml_namespaces.items() if "persistence" in k
        }
        content = _replace_all(content, persistence)
        content = re.sub(
            r"persistence_[12]_\d\.xsd", "persistence_3_0.xsd", content
        )
        content = re.sub(r"orm_[12]_\d\.xsd", "orm_3_0.xsd", content)
        return re.sub(
            r"(<(?:persistence|entity-mappings)\b[^>]*?"
            r"\bversion=\")[12]\.\d(\")",
            r"\g<1>3.0\g<2>",
            content,
        )

    def _update_web_xml(self, content: str) -> str:
        javaee = {
            k: v
            for k, v in self._xml_namespaces.items()
            if k.rstrip("/").endswith(("javaee", "j2ee", "jee"))
        }
        content = _replace_all(content, javaee)
        content = re.sub(
            r"web-(app|fragment)_[234]_\d\.xsd", r"web-\1_5_0.xsd", content
        )
        return re.sub(
            r"(<web-(?:app|fragment)\b[^>]*?\bversion=\")[234]\.\d(\")",
            r"\g<1>5.0\g<2>",
            content,
        )

    def _update_build_dependencies(self, content: str) -> str:
        content = self._update_maven_dependencies(content)
        return self._update_gradle_dependencies(content)

    def _maven_target(self, block: str) -> str | None:
        group = _MAVEN_GROUP_RE.search(block)
        name = _MAVEN_ARTIFACT_RE.search(block)
        if group is None or name is None:
            return None
        return self._equivalents.get(f"{group.group(1)}:{name.group(1)}")

    def _update_maven_dependencies(self, content: str) -> str:
        wanted: dict[str, set[str]] = {}
        uses: Counter[str] = Counter()
        for m in _MAVEN_DEPENDENCY_RE.finditer(content):
            target = self._maven_target(m.group(0))
            ref = _MAVEN_VERSION_REF_RE.search(m.group(0))
            if target is None or ref is None:
                continue
            wanted.setdefault(ref.group(1), set()).add(
                target.rsplit(":", 1)[1]
            )
            uses[ref.group(1)] += 1
        owned = {
            prop: next(iter(versions))
            for prop, versions in wanted.items()
            if _owns_property(
                content,
                versions,
                uses[prop],
                content.count(f"${{{prop}}}"),
                _maven_property_re(prop),
            )
        }

        content = _MAVEN_DEPENDENCY_RE.sub(
            lambda m: self._rewrite_maven_dependency(m.group(0), owned),
            content,
        )
        for prop, version in owned.items():
            content = _maven_property_re(prop).sub(
                lambda m, v=version: f"{m.group(1)}{v}{m.group(2)}",
                content,
                count=1,
            )
        return content

    def _rewrite_maven_dependency(
        self, block: str, owned: Mapping[str, str]
    ) -> str:
        target = self._maven_target(block)
        if target is None:
            return block
        group = _MAVEN_GROUP_RE.search(block)
        name = _MAVEN_ARTIFACT_RE.search(block)
        if group is None or name is None:
            return block
        new_group, new_name, new_version = target.split(":", 2)
        block = block.replace(
            group.group(0), f"<groupId>{new_group}</groupId>", 1
        )
        block = block.replace(
            name.group(0), f"<artifactId>{new_name}</artifactId>", 1
        )
        ref = _MAVEN_VERSION_REF_RE.search(block)
        if ref is not None and ref.group(1) in owned:
            # the property itself is bumped
            return block
        return _MAVEN_VERSION_RE.sub(
            f"<version>{new_version}</version>", block, count=1
        )

    def _update_gradle_dependencies(self, content: str) -> str:
        wanted: dict[str, set[str]] = {}
        uses: Counter[str] = Counter()
        for m in _GRADLE_COORDINATE_RE.finditer(content):
            target = self._equivalents.get(f"{m.group(2)}:{m.group(3)}")
            ref = _GRADLE_VERSION_REF_RE.fullmatch(m.group(4))
            if target is None or ref is None:
                continue
            wanted.setdefault(ref.group(1), set()).add(
                target.rsplit(":", 1)[1]
            )
            uses[ref.group(1)] += 1
        owned = {
            var: next(iter(versions))
            for var, versions in wanted.items()
            if _owns_property(
                content,
                versions,
                uses[var],
                len(_gradle_reference_re(var).findall(content)),
                _gradle_variable_re(var),
            )
        }

        content = _GRADLE_COORDINATE_RE.sub(
            lambda m: self._rewrite_gradle_coordinate(m, owned), content
        )
        for var, version in owned.items():
            content = _gradle_variable_re(var).sub(
                lambda m, v=version: f"{m.group(1)}{m.group(2)}{v}"
                f"{m.group(2)}",
                content,
                count=1,
            )
        return content

    def _rewrite_gradle_coordinate(
        self, m: re.Match[str], owned: Mapping[str, str]
    ) -> str:
        quote, group, name, version = m.groups()
        target = self._equivalents.get(f"{group}:{name}")
        if target is None:
            return m.group(0)
        new_group, new_name, new_version = target.split(":", 2)
        ref = _GRADLE_VERSION_REF_RE.fullmatch(version)
        if ref is not None and ref.group(1) in owned:
            new_version = version
        return f"{quote}{new_group}:{new_name}:{new_version}{quote}"
