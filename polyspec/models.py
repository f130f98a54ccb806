"""Data models for polyspec.

Two parallel families live here: the forward model (``Spec`` and its parts)
built from an authored markdown document, and the reverse model
(``ExtractedProject`` and its parts) recovered from a source tree. Both
serialize to camelCase dictionaries for JSON consumers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


TYPE_KINDS = ("struct", "enum", "interface", "alias")
SEVERITIES = ("error", "warning", "info")


@dataclass(slots=True)
class Field:
    """A struct field, enum variant, or interface member of a ``TypeDef``."""

    name: str
    type: str = ""
    description: str = ""
    required: bool = True
    default: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "required": self.required,
            "default": self.default,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Field":
        return cls(
            name=data["name"],
            type=data.get("type", ""),
            description=data.get("description", ""),
            required=data.get("required", True),
            default=data.get("default"),
        )


@dataclass(slots=True)
class TypeDef:
    """A named type declared in a spec."""

    name: str
    kind: str = "struct"
    description: str = ""
    fields: List[Field] = field(default_factory=list)
    alias_of: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "description": self.description,
            "fields": [f.to_dict() for f in self.fields or []],
            "aliasOf": self.alias_of,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TypeDef":
        return cls(
            name=data["name"],
            kind=data.get("kind", "struct"),
            description=data.get("description", ""),
            fields=[Field.from_dict(f) for f in data.get("fields") or []],
            alias_of=data.get("aliasOf", ""),
        )


@dataclass(slots=True)
class Param:
    """An accepted parameter of a ``Function``."""

    name: str
    type: str = ""
    description: str = ""
    default: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "default": self.default,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Param":
        return cls(
            name=data["name"],
            type=data.get("type", ""),
            description=data.get("description", ""),
            default=data.get("default"),
        )


@dataclass(slots=True)
class Return:
    type: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "description": self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Return":
        return cls(type=data.get("type", ""), description=data.get("description", ""))


@dataclass(slots=True)
class Function:
    """A function contract. ``logic`` is opaque free text and never parsed."""

    name: str
    description: str = ""
    accepts: List[Param] = field(default_factory=list)
    returns: Optional[Return] = None
    logic: str = ""
    errors: List[str] = field(default_factory=list)
    is_async: bool = False
    is_pure: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "accepts": [p.to_dict() for p in self.accepts or []],
            "returns": self.returns.to_dict() if self.returns else None,
            "logic": self.logic,
            "errors": list(self.errors or []),
            "async": self.is_async,
            "pure": self.is_pure,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Function":
        returns = data.get("returns")
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            accepts=[Param.from_dict(p) for p in data.get("accepts") or []],
            returns=Return.from_dict(returns) if returns else None,
            logic=data.get("logic", ""),
            errors=list(data.get("errors") or []),
            is_async=data.get("async", False),
            is_pure=data.get("pure", False),
        )


@dataclass(slots=True)
class TestCase:
    """One example for a function. ``given`` and ``expect`` are loosely typed."""

    __test__ = False  # keep pytest from collecting this class

    function: str
    name: str = ""
    given: Any = None
    when: str = ""
    expect: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function": self.function,
            "name": self.name,
            "given": self.given,
            "when": self.when,
            "expect": self.expect,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestCase":
        return cls(
            function=data.get("function", ""),
            name=data.get("name", ""),
            given=data.get("given"),
            when=data.get("when", ""),
            expect=data.get("expect"),
        )


@dataclass(slots=True)
class Dependency:
    name: str
    version: str = ""
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "version": self.version, "description": self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Dependency":
        return cls(
            name=data["name"],
            version=data.get("version", ""),
            description=data.get("description", ""),
        )


@dataclass(slots=True)
class ConfigItem:
    name: str
    type: str = ""
    default: Optional[str] = None
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "default": self.default,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigItem":
        return cls(
            name=data["name"],
            type=data.get("type", ""),
            default=data.get("default"),
            description=data.get("description", ""),
        )


@dataclass(slots=True)
class Spec:
    """The normalized forward model built from one markdown document."""

    name: str
    description: str = ""
    version: str = ""
    author: str = ""
    license: str = ""
    overview: str = ""
    target_languages: List[str] = field(default_factory=list)
    types: List[TypeDef] = field(default_factory=list)
    functions: List[Function] = field(default_factory=list)
    tests: List[TestCase] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    configuration: List[ConfigItem] = field(default_factory=list)

    def normalize(self) -> "Spec":
        """Replace every absent list, at any depth, with an empty list.

        Scalars are left untouched, so applying this twice is the same as
        applying it once.
        """
        for name in ("target_languages", "types", "functions", "tests", "dependencies", "configuration"):
            if getattr(self, name) is None:
                setattr(self, name, [])
        for type_def in self.types:
            if type_def.fields is None:
                type_def.fields = []
        for function in self.functions:
            if function.accepts is None:
                function.accepts = []
            if function.errors is None:
                function.errors = []
        return self

    def get_function(self, name: str) -> Optional[Function]:
        for function in self.functions:
            if function.name == name:
                return function
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "author": self.author,
            "license": self.license,
            "overview": self.overview,
            "targetLanguages": list(self.target_languages or []),
            "types": [t.to_dict() for t in self.types or []],
            "functions": [f.to_dict() for f in self.functions or []],
            "tests": [t.to_dict() for t in self.tests or []],
            "dependencies": [d.to_dict() for d in self.dependencies or []],
            "configuration": [c.to_dict() for c in self.configuration or []],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Spec":
        """Create from dictionary representation."""
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            version=data.get("version", ""),
            author=data.get("author", ""),
            license=data.get("license", ""),
            overview=data.get("overview", ""),
            target_languages=list(data.get("targetLanguages") or []),
            types=[TypeDef.from_dict(t) for t in data.get("types") or []],
            functions=[Function.from_dict(f) for f in data.get("functions") or []],
            tests=[TestCase.from_dict(t) for t in data.get("tests") or []],
            dependencies=[Dependency.from_dict(d) for d in data.get("dependencies") or []],
            configuration=[ConfigItem.from_dict(c) for c in data.get("configuration") or []],
        ).normalize()


@dataclass(slots=True)
class ValidationIssue:
    severity: str
    code: str
    message: str
    location: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "location": self.location,
        }


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating a parsed spec."""

    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    def codes(self) -> List[str]:
        return [i.code for i in self.issues]

    def add(self, severity: str, code: str, message: str, location: Optional[str] = None) -> None:
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity '{severity}'")
        self.issues.append(ValidationIssue(severity, code, message, location))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errorCount": len(self.errors),
            "warningCount": len(self.warnings),
            "issues": [i.to_dict() for i in self.issues],
        }


# ----------------------------------------------------------------------
# Reverse model
# ----------------------------------------------------------------------


@dataclass(slots=True)
class ExtractedField:
    name: str
    type: str = ""
    description: str = ""
    optional: bool = False
    default: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "optional": self.optional,
            "default": self.default,
        }


@dataclass(slots=True)
class ExtractedType:
    """A type recovered from source, with provenance."""

    name: str
    kind: str = "struct"
    description: str = ""
    fields: List[ExtractedField] = field(default_factory=list)
    variants: List[str] = field(default_factory=list)
    alias_of: str = ""
    source_file: str = ""
    line_number: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "description": self.description,
            "fields": [f.to_dict() for f in self.fields],
            "variants": list(self.variants),
            "aliasOf": self.alias_of,
            "sourceFile": self.source_file,
            "lineNumber": self.line_number,
        }


@dataclass(slots=True)
class ExtractedParam:
    name: str
    type: str = ""
    description: str = ""
    default: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "default": self.default,
        }


@dataclass(slots=True)
class ExtractedFunction:
    """A function recovered from source, with its raw body and inferred logic steps."""

    name: str
    description: str = ""
    parameters: List[ExtractedParam] = field(default_factory=list)
    returns: str = ""
    is_async: bool = False
    logic: List[str] = field(default_factory=list)
    body: str = ""
    source_file: str = ""
    line_number: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [p.to_dict() for p in self.parameters],
            "returns": self.returns,
            "async": self.is_async,
            "logic": list(self.logic),
            "body": self.body,
            "sourceFile": self.source_file,
            "lineNumber": self.line_number,
        }


@dataclass(slots=True)
class ExtractedTest:
    function: str
    name: str = ""
    given: Any = None
    expect: Any = None
    source_file: str = ""
    line_number: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function": self.function,
            "name": self.name,
            "given": self.given,
            "expect": self.expect,
            "sourceFile": self.source_file,
            "lineNumber": self.line_number,
        }


@dataclass(slots=True)
class ExtractedProject:
    """Merged reverse model for one source tree."""

    name: str
    description: str = ""
    detected_language: str = ""
    types: List[ExtractedType] = field(default_factory=list)
    functions: List[ExtractedFunction] = field(default_factory=list)
    tests: List[ExtractedTest] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def deduplicate(self) -> "ExtractedProject":
        """Keep the first type and first function of each name, in walk order."""
        self.types = _first_by_name(self.types)
        self.functions = _first_by_name(self.functions)
        self.dependencies = _first_by_name(self.dependencies)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "description": self.description,
            "detectedLanguage": self.detected_language,
            "types": [t.to_dict() for t in self.types],
            "functions": [f.to_dict() for f in self.functions],
            "tests": [t.to_dict() for t in self.tests],
            "dependencies": [d.to_dict() for d in self.dependencies],
            "warnings": list(self.warnings),
        }


def _first_by_name(items: List[Any]) -> List[Any]:
    seen = set()
    kept = []
    for item in items:
        if item.name in seen:
            continue
        seen.add(item.name)
        kept.append(item)
    return kept
