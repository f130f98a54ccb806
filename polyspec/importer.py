"""Walk a source tree and merge per-file extraction into one project.

The walk is depth-first with directory entries visited in sorted order, so
"first occurrence wins" during deduplication always refers to the same file
for the same tree.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tomllib
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .errors import LanguageDetectionError, SourceDirectoryError
from .extractors import LanguageExtractor, SourceLanguage, extractor_for_path, get_extractor
from .markdown import render_project
from .models import Dependency, ExtractedProject
from .polyspec_logging import log_performance, log_project_extracted

logger = logging.getLogger("polyspec.importer")

MAX_FILE_BYTES_ENV = "POLYSPEC_MAX_FILE_BYTES"
DEFAULT_MAX_FILE_BYTES = 1024 * 1024

SKIP_DIRS = {
    "node_modules",
    "vendor",
    "target",
    "build",
    "dist",
    "out",
    "bin",
    "obj",
    "__pycache__",
    "venv",
    "env",
    "site-packages",
    "coverage",
}


def _max_file_bytes_from_env() -> int:
    raw = os.getenv(MAX_FILE_BYTES_ENV)
    if not raw:
        return DEFAULT_MAX_FILE_BYTES
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {MAX_FILE_BYTES_ENV}={raw!r}")
        return DEFAULT_MAX_FILE_BYTES


class Importer:
    """Coordinates language detection, per-file extraction and merging."""

    def __init__(self, max_file_bytes: Optional[int] = None):
        self.max_file_bytes = max_file_bytes if max_file_bytes is not None else _max_file_bytes_from_env()

    # ------------------------------------------------------------------
    # Walking
    # ------------------------------------------------------------------

    @staticmethod
    def _root(root: Union[str, Path]) -> Path:
        path = Path(root).expanduser()
        if not path.exists():
            raise SourceDirectoryError(f"Source directory '{root}' does not exist")
        if not path.is_dir():
            raise SourceDirectoryError(f"Source path '{root}' is not a directory")
        return path.resolve()

    def walk(self, root: Path, warnings: Optional[List[str]] = None) -> Iterator[Tuple[str, Path]]:
        """Yield ``(relative_posix_path, absolute_path)`` for every candidate file."""

        def on_error(error: OSError) -> None:
            message = f"Could not read directory {error.filename}: {error.strerror}"
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)

        for current, dirs, files in os.walk(root, onerror=on_error):
            dirs[:] = sorted(d for d in dirs if not d.startswith(".") and d not in SKIP_DIRS)
            for name in sorted(files):
                absolute = Path(current) / name
                yield absolute.relative_to(root).as_posix(), absolute

    def detect_language(self, root: Union[str, Path]) -> SourceLanguage:
        """Pick the language with the most files; ties go to the first one seen."""
        base = self._root(root)
        counts: Dict[SourceLanguage, int] = {}
        for relative, _ in self.walk(base):
            extractor = extractor_for_path(relative)
            if extractor is not None:
                counts[extractor.language] = counts.get(extractor.language, 0) + 1
        if not counts:
            raise LanguageDetectionError(f"No supported source files found under '{root}'")
        logger.debug(f"Language file counts for {base}: {dict((k.value, v) for k, v in counts.items())}")
        return max(counts, key=counts.get)

    def _read(self, relative: str, absolute: Path, warnings: List[str]) -> Optional[str]:
        try:
            size = absolute.stat().st_size
            if size > self.max_file_bytes:
                message = f"Skipped {relative}: {size} bytes exceeds the {self.max_file_bytes} byte limit"
                logger.warning(message)
                warnings.append(message)
                return None
            return absolute.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            message = f"Could not read {relative}: {e}"
            logger.warning(message)
            warnings.append(message)
            return None

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    @log_performance("extract_project")
    def extract(
        self,
        root: Union[str, Path],
        language: Union[SourceLanguage, str, None] = None,
        name: Optional[str] = None,
    ) -> ExtractedProject:
        """Extract the reverse model of the source tree at ``root``.

        Raises ``SourceDirectoryError`` for a missing root,
        ``LanguageDetectionError`` when no supported files exist and
        ``UnsupportedLanguageError`` for an unknown ``language``.
        """
        base = self._root(root)
        extractor = get_extractor(language) if language else get_extractor(self.detect_language(base))
        project = ExtractedProject(name=name or base.name, detected_language=extractor.language.value)

        files = 0
        for relative, absolute in self.walk(base, project.warnings):
            if not extractor.handles(relative):
                continue
            content = self._read(relative, absolute, project.warnings)
            if content is None:
                continue
            files += 1
            self._extract_file(extractor, project, relative, content)

        project.deduplicate()
        resolve_test_targets(project)
        project.dependencies = discover_dependencies(base, extractor.language, project.warnings)

        log_project_extracted(
            project.name,
            project.detected_language,
            files=files,
            types=len(project.types),
            functions=len(project.functions),
            tests=len(project.tests),
            warnings=len(project.warnings),
        )
        return project

    @staticmethod
    def _extract_file(extractor: LanguageExtractor, project: ExtractedProject, relative: str, content: str) -> None:
        if not project.description:
            project.description = extractor.extract_package_description(content)
        if extractor.is_test_file(relative):
            project.tests.extend(extractor.extract_tests(content, relative))
            return
        project.types.extend(extractor.extract_types(content, relative))
        project.functions.extend(extractor.extract_functions(content, relative))
        if extractor.inline_tests:
            project.tests.extend(extractor.extract_tests(content, relative))

    def import_from_directory(
        self,
        root: Union[str, Path],
        output_dir: Union[str, Path, None] = None,
        language: Union[SourceLanguage, str, None] = None,
    ) -> Tuple[Path, ExtractedProject]:
        """Extract ``root`` and write the rendered spec next to it (or into ``output_dir``).

        An existing ``<name>.spec.md`` is never overwritten; the import goes
        to ``<name>-imported.spec.md`` instead.
        """
        project = self.extract(root, language=language)
        target_dir = Path(output_dir).expanduser() if output_dir else self._root(root)
        target_dir.mkdir(parents=True, exist_ok=True)

        slug = re.sub(r"[^a-z0-9]+", "-", project.name.lower()).strip("-") or "project"
        spec_path = target_dir / f"{slug}.spec.md"
        if spec_path.exists():
            spec_path = target_dir / f"{slug}-imported.spec.md"
        spec_path.write_text(render_project(project), encoding="utf-8")
        logger.info(f"Wrote imported spec to {spec_path}")
        return spec_path, project


def _normalize_name(name: str) -> str:
    return name.lower().replace("_", "")


def resolve_test_targets(project: ExtractedProject) -> None:
    """Narrow guessed test targets to known function names.

    ``slugify_handles_spaces`` resolves to ``slugify`` when that function
    exists: the longest known name that prefixes the guess wins.
    """
    known = {_normalize_name(f.name): f.name for f in project.functions}
    names = set(known.values())
    for test in project.tests:
        if test.function in names:
            continue
        guess = _normalize_name(test.function)
        if guess in known:
            test.function = known[guess]
            continue
        prefixes = [key for key in known if key and guess.startswith(key)]
        if prefixes:
            test.function = known[max(prefixes, key=len)]


# ----------------------------------------------------------------------
# Manifest dependencies
# ----------------------------------------------------------------------

GO_REQUIRE_RE = re.compile(r"^\s*(?:require\s+)?([\w.\-/~]+\.[\w.\-/~]+)\s+(v[\w.\-+]+)(?:\s*//\s*(.*))?$")
REQUIREMENT_RE = re.compile(r"^([A-Za-z0-9][A-Za-z0-9._\-]*)(?:\[[^\]]*\])?\s*(?:(==|>=|<=|~=|!=|>|<)\s*([^\s;,#]+))?")


def discover_dependencies(root: Path, language: SourceLanguage, warnings: Optional[List[str]] = None) -> List[Dependency]:
    """Read declared dependencies from the language's manifest at ``root``.

    A malformed manifest adds a warning and contributes nothing.
    """
    readers = {
        SourceLanguage.GO: _go_dependencies,
        SourceLanguage.TYPESCRIPT: _npm_dependencies,
        SourceLanguage.PYTHON: _python_dependencies,
        SourceLanguage.JAVA: _maven_dependencies,
        SourceLanguage.RUST: _cargo_dependencies,
        SourceLanguage.CSHARP: _dotnet_dependencies,
    }
    try:
        return readers[language](root)
    except (OSError, UnicodeDecodeError, ValueError, ET.ParseError) as e:
        message = f"Could not read dependency manifest: {e}"
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)
        return []


def _go_dependencies(root: Path) -> List[Dependency]:
    manifest = root / "go.mod"
    if not manifest.is_file():
        return []
    dependencies = []
    in_block = False
    for line in manifest.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if stripped.startswith("require ("):
            in_block = True
            continue
        if in_block and stripped == ")":
            in_block = False
            continue
        if not (in_block or stripped.startswith("require ")):
            continue
        match = GO_REQUIRE_RE.match(stripped)
        if match:
            dependencies.append(Dependency(name=match.group(1), version=match.group(2),
                                           description=(match.group(3) or "").strip()))
    return dependencies


def _npm_dependencies(root: Path) -> List[Dependency]:
    manifest = root / "package.json"
    if not manifest.is_file():
        return []
    data = json.loads(manifest.read_text(encoding="utf-8"))
    return [Dependency(name=name, version=str(version))
            for name, version in (data.get("dependencies") or {}).items()]


def _python_dependencies(root: Path) -> List[Dependency]:
    dependencies: List[Dependency] = []
    pyproject = root / "pyproject.toml"
    if pyproject.is_file():
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        for requirement in data.get("project", {}).get("dependencies", []):
            dependency = _requirement(requirement)
            if dependency:
                dependencies.append(dependency)
        poetry = data.get("tool", {}).get("poetry", {}).get("dependencies", {})
        for name, spec in poetry.items():
            if name != "python":
                version = spec.get("version", "") if isinstance(spec, dict) else str(spec)
                dependencies.append(Dependency(name=name, version=version))
    requirements = root / "requirements.txt"
    if requirements.is_file():
        for line in requirements.read_text(encoding="utf-8").splitlines():
            line = line.split("#", 1)[0].strip()
            if not line or line.startswith("-"):
                continue
            dependency = _requirement(line)
            if dependency:
                dependencies.append(dependency)
    return dependencies


def _requirement(text: str) -> Optional[Dependency]:
    match = REQUIREMENT_RE.match(text.strip())
    if not match:
        return None
    version = match.group(3) or ""
    if match.group(2) and match.group(2) != "==":
        version = match.group(2) + version
    return Dependency(name=match.group(1), version=version)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _maven_dependencies(root: Path) -> List[Dependency]:
    manifest = root / "pom.xml"
    if not manifest.is_file():
        return []
    tree = ET.parse(manifest)
    dependencies = []
    for element in tree.iter():
        if _local_name(element.tag) != "dependency":
            continue
        values = {_local_name(child.tag): (child.text or "").strip() for child in element}
        if values.get("artifactId"):
            dependencies.append(Dependency(
                name=values["artifactId"],
                version=values.get("version", ""),
                description=f"groupId {values['groupId']}" if values.get("groupId") else "",
            ))
    return dependencies


def _cargo_dependencies(root: Path) -> List[Dependency]:
    manifest = root / "Cargo.toml"
    if not manifest.is_file():
        return []
    data = tomllib.loads(manifest.read_text(encoding="utf-8"))
    dependencies = []
    for name, spec in data.get("dependencies", {}).items():
        version = spec.get("version", "") if isinstance(spec, dict) else str(spec)
        dependencies.append(Dependency(name=name, version=version))
    return dependencies


def _dotnet_dependencies(root: Path) -> List[Dependency]:
    dependencies = []
    for manifest in sorted(root.glob("*.csproj")):
        tree = ET.parse(manifest)
        for element in tree.iter():
            if _local_name(element.tag) == "PackageReference" and element.get("Include"):
                version = element.get("Version") or ""
                if not version:
                    child = next((c for c in element if _local_name(c.tag) == "Version"), None)
                    version = (child.text or "").strip() if child is not None else ""
                dependencies.append(Dependency(name=element.get("Include"), version=version))
    return dependencies
