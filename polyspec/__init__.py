"""polyspec library exports."""

from .errors import (
    LanguageDetectionError,
    MissingNameError,
    PolyspecError,
    SourceDirectoryError,
    UnsupportedLanguageError,
)
from .importer import Importer
from .markdown import render_project, render_spec
from .models import ExtractedProject, Spec, ValidationResult
from .parity import ParityReport, check_parity, compare
from .parser import ParseResult, parse_spec, parse_spec_file, validate
from .typemap import map_type, reverse_map_type, supported_languages

__all__ = [
    "ExtractedProject",
    "Importer",
    "LanguageDetectionError",
    "MissingNameError",
    "ParityReport",
    "ParseResult",
    "PolyspecError",
    "SourceDirectoryError",
    "Spec",
    "UnsupportedLanguageError",
    "ValidationResult",
    "check_parity",
    "compare",
    "map_type",
    "parse_spec",
    "parse_spec_file",
    "render_project",
    "render_spec",
    "reverse_map_type",
    "supported_languages",
    "validate",
]
