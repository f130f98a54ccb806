"""MCP server exposing polyspec's parse, import and parity tools."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from polyspec.errors import MissingNameError, PolyspecError, UnsupportedLanguageError
from polyspec.extractors import all_extractors
from polyspec.importer import Importer
from polyspec.parity import check_parity
from polyspec.parser import parse_spec as parse_markdown
from polyspec.parser import validate
from polyspec.polyspec_logging import log_error_with_context, setup_logging
from polyspec.typemap import map_type as map_pseudo_type
from polyspec.typemap import supported_languages

mcp = FastMCP("polyspec")
logger = logging.getLogger("polyspec.server")

PROJECT_ROOT_ENV = "POLYSPEC_PROJECT_ROOT"


def _resolve_base(root: Optional[str]) -> Path:
    if root:
        resolved = Path(root).expanduser().resolve()
        if not resolved.exists():
            raise ValueError(f"Provided root '{root}' does not exist.")
        return resolved

    env_root = os.getenv(PROJECT_ROOT_ENV)
    if env_root:
        env_path = Path(env_root).expanduser().resolve()
        if not env_path.exists():
            raise ValueError(
                f"Environment variable {PROJECT_ROOT_ENV} points to '{env_root}', which does not exist."
            )
        return env_path

    return Path.cwd().resolve()


def _resolve_path(path: str, root: Optional[str]) -> Path:
    """Absolute paths are used as given; relative ones resolve against the project root."""
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate.resolve()
    return (_resolve_base(root) / candidate).resolve()


def _load_markdown(path: Optional[str], content: Optional[str], root: Optional[str]) -> tuple[str, Optional[Path]]:
    if content is not None:
        return content, None
    if not path:
        raise ValueError("Provide either 'path' to a spec file or the spec 'content'.")
    spec_path = _resolve_path(path, root)
    if not spec_path.is_file():
        raise FileNotFoundError(f"Spec file '{spec_path}' does not exist")
    return spec_path.read_text(encoding="utf-8"), spec_path


def _error(error: Exception, operation: str, suggestion: str, **context: Any) -> Dict[str, Any]:
    log_error_with_context(error, {"operation": operation, **context})
    return {
        "error": str(error),
        "error_type": type(error).__name__,
        "suggestion": suggestion,
    }


@mcp.tool()
def list_languages() -> Dict[str, Any]:
    """List the target languages the type mapper knows and the languages that can be imported from source."""

    return {
        "target_languages": supported_languages(),
        "source_languages": [extractor.language.value for extractor in all_extractors()],
        "extensions": {extractor.language.value: list(extractor.extensions) for extractor in all_extractors()},
        "next_suggested_step": "parse_spec",
    }


@mcp.tool()
def parse_spec(path: Optional[str] = None, content: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 1: Parse a markdown spec (from a file path or inline content) into its structured form.
    Returns the normalized spec and any fragments that were skipped as warnings."""

    try:
        markdown, spec_path = _load_markdown(path, content, root)
        result = parse_markdown(markdown)
    except MissingNameError as e:
        return _error(e, "parse_spec", "Start the document with a level-1 heading such as '# MyProject'.", path=path)
    except (ValueError, OSError) as e:
        return _error(e, "parse_spec", "Check the spec path or pass the markdown as 'content'.", path=path)

    return {
        **result.to_dict(),
        "spec_path": str(spec_path) if spec_path else None,
        "next_suggested_step": "validate_spec",
        "message": f"Parsed spec '{result.spec.name}' with {len(result.spec.functions)} functions "
                   f"and {len(result.warnings)} warnings.",
    }


@mcp.tool()
def validate_spec(path: Optional[str] = None, content: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 2: Parse and validate a spec, reporting errors, warnings and info findings with codes and locations.
    Only a spec without errors is ready for generation."""

    try:
        markdown, _ = _load_markdown(path, content, root)
        result = parse_markdown(markdown)
    except (ValueError, OSError) as e:
        return _error(e, "validate_spec", "Fix the document so it parses before validating it.", path=path)

    validation = validate(result.spec)
    return {
        "spec_name": result.spec.name,
        "validation": validation.to_dict(),
        "parse_warnings": result.warnings,
        "next_suggested_step": "map_type" if validation.valid else "parse_spec",
        "message": "Spec is valid." if validation.valid
        else f"Spec has {len(validation.errors)} errors to fix.",
    }


@mcp.tool()
def map_type(pseudo_type: str, language: str) -> Dict[str, Any]:
    """Spell a spec pseudo-type (for example 'List of Optional Integer') in a target language."""

    try:
        concrete = map_pseudo_type(pseudo_type, language)
    except UnsupportedLanguageError as e:
        return _error(e, "map_type", f"Use one of: {', '.join(supported_languages())}.", language=language)
    return {"pseudo_type": pseudo_type, "language": language, "concrete_type": concrete}


@mcp.tool()
def import_spec_from_source(
    source_dir: str,
    language: Optional[str] = None,
    output_dir: Optional[str] = None,
    write: bool = True,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """Reverse-extract a spec from an existing source tree.
    Detects the dominant language unless one is given, and writes '<name>.spec.md' when 'write' is true."""

    importer = Importer()
    try:
        source_path = _resolve_path(source_dir, root)
        if write:
            target = _resolve_path(output_dir, root) if output_dir else None
            spec_path, project = importer.import_from_directory(source_path, target, language=language)
        else:
            spec_path, project = None, importer.extract(source_path, language=language)
    except PolyspecError as e:
        return _error(e, "import_spec_from_source", "Point 'source_dir' at a directory with supported source files.",
                      source_dir=source_dir, language=language)
    except (ValueError, OSError) as e:
        return _error(e, "import_spec_from_source", "Check the directory paths and permissions.",
                      source_dir=source_dir)

    return {
        "project": project.to_dict(),
        "spec_path": str(spec_path) if spec_path else None,
        "next_suggested_step": "validate_spec",
        "message": f"Extracted {len(project.types)} types, {len(project.functions)} functions and "
                   f"{len(project.tests)} tests from {project.detected_language} sources.",
    }


@mcp.tool()
def ensure_parity(spec_path: str, projects: List[str], root: Optional[str] = None) -> Dict[str, Any]:
    """Compare implementations of one spec. The first project is the reference; every other project is scored
    by the share of reference functions and types it also declares, with fix instructions for each gap."""

    try:
        resolved_spec = _resolve_path(spec_path, root)
        resolved_projects = [_resolve_path(project, root) for project in projects]
        report = check_parity(resolved_spec, resolved_projects)
    except (ValueError, OSError) as e:
        return _error(e, "ensure_parity", "Pass the spec path and at least two project directories.",
                      spec_path=spec_path, projects=projects)

    return {
        **report.to_dict(),
        "message": f"Parity {report.parity_score:.0%} across {len(report.scores)} candidates "
                   f"with {len(report.gaps)} gaps.",
    }


def main() -> None:
    setup_logging()
    logger.info("Starting polyspec MCP server")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
