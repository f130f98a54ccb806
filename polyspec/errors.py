"""Exception types raised by polyspec.

Only structural problems become exceptions. Malformed fragments inside a
spec and unreadable files during a walk are reported as warnings instead.
"""

from __future__ import annotations


class PolyspecError(ValueError):
    """Base class for hard failures that abort a parse or extraction call."""


class MissingNameError(PolyspecError):
    """The markdown document has no level-1 heading to name the spec."""

    def __init__(self, message: str = "Spec document has no level-1 heading (# Name)"):
        super().__init__(message)


class UnsupportedLanguageError(PolyspecError):
    """No extractor or type table exists for the requested language."""

    def __init__(self, language: str, supported=None):
        self.language = language
        self.supported = list(supported or [])
        message = f"Unsupported language '{language}'"
        if self.supported:
            message += f". Supported languages: {', '.join(self.supported)}"
        super().__init__(message)


class SourceDirectoryError(PolyspecError):
    """The extraction root is missing, not a directory, or unreadable."""


class LanguageDetectionError(PolyspecError):
    """A source tree contains no files in any supported language."""
