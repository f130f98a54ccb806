"""Per-language source extractors and their registry."""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from ..errors import UnsupportedLanguageError
from ..typemap import canonical_language
from .base import LanguageExtractor, SourceLanguage
from .csharp import CSharpExtractor
from .go import GoExtractor
from .java import JavaExtractor
from .python import PythonExtractor
from .rust import RustExtractor
from .typescript import TypeScriptExtractor

# Registration order is the tie-break order for file-extension lookups.
_EXTRACTORS: Dict[SourceLanguage, LanguageExtractor] = {
    extractor.language: extractor
    for extractor in (
        GoExtractor(),
        TypeScriptExtractor(),
        PythonExtractor(),
        JavaExtractor(),
        RustExtractor(),
        CSharpExtractor(),
    )
}


def get_extractor(language: Union[SourceLanguage, str]) -> LanguageExtractor:
    """Return the extractor for a language tag or name (aliases accepted)."""
    if isinstance(language, SourceLanguage):
        return _EXTRACTORS[language]
    try:
        tag = SourceLanguage(canonical_language(language))
    except ValueError:
        raise UnsupportedLanguageError(language, [tag.value for tag in _EXTRACTORS]) from None
    return _EXTRACTORS[tag]


def extractor_for_path(path: str) -> Optional[LanguageExtractor]:
    for extractor in _EXTRACTORS.values():
        if extractor.handles(path):
            return extractor
    return None


def all_extractors() -> List[LanguageExtractor]:
    return list(_EXTRACTORS.values())


__all__ = [
    "CSharpExtractor",
    "GoExtractor",
    "JavaExtractor",
    "LanguageExtractor",
    "PythonExtractor",
    "RustExtractor",
    "SourceLanguage",
    "TypeScriptExtractor",
    "all_extractors",
    "extractor_for_path",
    "get_extractor",
]
