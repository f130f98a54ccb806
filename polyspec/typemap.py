"""Pseudo-type vocabulary and its spellings in each target language.

``map_type`` turns a spec pseudo-type (``Text``, ``List of Optional Integer``,
``Map of Text to Integer``) into a concrete spelling; ``reverse_map_type``
turns a concrete source spelling back into a pseudo-type. Unknown names
pass through unchanged in both directions because specs refer to their
own declared types.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from .errors import UnsupportedLanguageError

LANGUAGES = ("go", "python", "typescript", "java", "rust", "csharp")

LANGUAGE_ALIASES: Dict[str, str] = {
    "golang": "go",
    "py": "python",
    "python3": "python",
    "ts": "typescript",
    "javascript": "typescript",
    "js": "typescript",
    "c#": "csharp",
    "cs": "csharp",
    "c-sharp": "csharp",
    "dotnet": "csharp",
    "rs": "rust",
}

# Synonyms accepted in specs, folded to the canonical pseudo-type.
PSEUDO_SYNONYMS: Dict[str, str] = {
    "text": "Text",
    "string": "Text",
    "str": "Text",
    "integer": "Integer",
    "int": "Integer",
    "number": "Integer",
    "float": "Float",
    "double": "Float",
    "decimal": "Decimal",
    "boolean": "Boolean",
    "bool": "Boolean",
    "timestamp": "Timestamp",
    "datetime": "Timestamp",
    "duration": "Duration",
    "uuid": "UUID",
    "bytes": "Bytes",
    "any": "Any",
    "nothing": "Nothing",
    "void": "Nothing",
    "none": "Nothing",
}

FLAT_TYPES: Dict[str, Dict[str, str]] = {
    "go": {
        "Text": "string", "Integer": "int", "Float": "float64", "Decimal": "float64",
        "Boolean": "bool", "Timestamp": "time.Time", "Duration": "time.Duration",
        "UUID": "string", "Bytes": "[]byte", "Any": "interface{}", "Nothing": "",
    },
    "python": {
        "Text": "str", "Integer": "int", "Float": "float", "Decimal": "Decimal",
        "Boolean": "bool", "Timestamp": "datetime", "Duration": "timedelta",
        "UUID": "UUID", "Bytes": "bytes", "Any": "Any", "Nothing": "None",
    },
    "typescript": {
        "Text": "string", "Integer": "number", "Float": "number", "Decimal": "number",
        "Boolean": "boolean", "Timestamp": "Date", "Duration": "number",
        "UUID": "string", "Bytes": "Uint8Array", "Any": "unknown", "Nothing": "void",
    },
    "java": {
        "Text": "String", "Integer": "int", "Float": "double", "Decimal": "BigDecimal",
        "Boolean": "boolean", "Timestamp": "Instant", "Duration": "Duration",
        "UUID": "UUID", "Bytes": "byte[]", "Any": "Object", "Nothing": "void",
    },
    "rust": {
        "Text": "String", "Integer": "i64", "Float": "f64", "Decimal": "rust_decimal::Decimal",
        "Boolean": "bool", "Timestamp": "chrono::DateTime<chrono::Utc>",
        "Duration": "std::time::Duration", "UUID": "uuid::Uuid", "Bytes": "Vec<u8>",
        "Any": "serde_json::Value", "Nothing": "()",
    },
    "csharp": {
        "Text": "string", "Integer": "int", "Float": "double", "Decimal": "decimal",
        "Boolean": "bool", "Timestamp": "DateTimeOffset", "Duration": "TimeSpan",
        "UUID": "Guid", "Bytes": "byte[]", "Any": "object", "Nothing": "void",
    },
}

JAVA_BOXED = {
    "int": "Integer", "long": "Long", "double": "Double", "float": "Float",
    "boolean": "Boolean", "char": "Character", "byte": "Byte", "short": "Short",
    "void": "Void",
}

# Go spells a wrapped Nothing as the empty struct.
GO_NESTED_NOTHING = "struct{}"

_LIST_RE = re.compile(r"^(?:list|array|sequence)\s+of\s+(.+)$", re.IGNORECASE)
_OPTIONAL_RE = re.compile(r"^(?:optional|nullable|maybe)\s+(.+)$", re.IGNORECASE)
_MAP_RE = re.compile(r"^(?:map|dictionary|dict)\s+of\s+(.+?)\s+to\s+(.+)$", re.IGNORECASE)


def canonical_language(language: str) -> str:
    """Fold a language name or alias to its canonical id (unchecked)."""
    key = (language or "").strip().lower()
    return LANGUAGE_ALIASES.get(key, key)


def supported_languages() -> List[str]:
    return list(LANGUAGES)


def _require_language(language: str) -> str:
    canonical = canonical_language(language)
    if canonical not in FLAT_TYPES:
        raise UnsupportedLanguageError(language, LANGUAGES)
    return canonical


def canonical_pseudo_type(pseudo: str) -> str:
    """Fold a flat pseudo-type synonym (``string``, ``bool``) to its canonical name."""
    stripped = (pseudo or "").strip()
    return PSEUDO_SYNONYMS.get(stripped.lower(), stripped)


def map_type(pseudo: str, language: str) -> str:
    """Spell a pseudo-type in ``language``.

    Raises ``UnsupportedLanguageError`` for an unknown language. Unknown type
    names are returned unchanged.
    """
    return _map(pseudo.strip(), _require_language(language), nested=False)


def _map(pseudo: str, language: str, nested: bool) -> str:
    match = _MAP_RE.match(pseudo)
    if match:
        key = _map(match.group(1).strip(), language, nested=True)
        value = _map(match.group(2).strip(), language, nested=True)
        return _wrap_map(key, value, language)

    match = _LIST_RE.match(pseudo)
    if match:
        return _wrap_list(_map(match.group(1).strip(), language, nested=True), language)

    match = _OPTIONAL_RE.match(pseudo)
    if match:
        return _wrap_optional(_map(match.group(1).strip(), language, nested=True), language)

    canonical = canonical_pseudo_type(pseudo)
    spelled = FLAT_TYPES[language].get(canonical, pseudo)
    if language == "java" and nested:
        spelled = JAVA_BOXED.get(spelled, spelled)
    if language == "go" and nested and canonical == "Nothing":
        spelled = GO_NESTED_NOTHING
    return spelled


def _wrap_list(inner: str, language: str) -> str:
    if language == "go":
        return f"[]{inner}"
    if language == "python":
        return f"List[{inner}]"
    if language == "typescript":
        return f"Array<{inner}>"
    if language == "rust":
        return f"Vec<{inner}>"
    return f"List<{inner}>"


def _wrap_optional(inner: str, language: str) -> str:
    if language == "go":
        return f"*{inner}"
    if language == "python":
        return f"Optional[{inner}]"
    if language == "typescript":
        return f"{inner} | null"
    if language == "java":
        return f"Optional<{inner}>"
    if language == "rust":
        return f"Option<{inner}>"
    return f"{inner}?"


def _wrap_map(key: str, value: str, language: str) -> str:
    if language == "go":
        return f"map[{key}]{value}"
    if language == "python":
        return f"Dict[{key}, {value}]"
    if language == "typescript":
        return f"Record<{key}, {value}>"
    if language == "rust":
        return f"HashMap<{key}, {value}>"
    if language == "csharp":
        return f"Dictionary<{key}, {value}>"
    return f"Map<{key}, {value}>"


# ----------------------------------------------------------------------
# Reverse direction
# ----------------------------------------------------------------------

REVERSE_FLAT: Dict[str, Dict[str, str]] = {
    "go": {
        "string": "Text", "int": "Integer", "int8": "Integer", "int16": "Integer",
        "int32": "Integer", "int64": "Integer", "uint": "Integer", "uint8": "Integer",
        "uint16": "Integer", "uint32": "Integer", "uint64": "Integer", "rune": "Integer",
        "byte": "Integer", "float32": "Float", "float64": "Float", "bool": "Boolean",
        "time.Time": "Timestamp", "time.Duration": "Duration", "[]byte": "Bytes",
        "interface{}": "Any", "any": "Any", "uuid.UUID": "UUID", "struct{}": "Nothing",
    },
    "python": {
        "str": "Text", "int": "Integer", "float": "Float", "Decimal": "Decimal",
        "bool": "Boolean", "datetime": "Timestamp", "datetime.datetime": "Timestamp",
        "timedelta": "Duration", "datetime.timedelta": "Duration", "UUID": "UUID",
        "uuid.UUID": "UUID", "bytes": "Bytes", "Any": "Any", "object": "Any",
        "None": "Nothing",
    },
    "typescript": {
        "string": "Text", "number": "Integer", "bigint": "Integer", "boolean": "Boolean",
        "Date": "Timestamp", "Uint8Array": "Bytes", "unknown": "Any", "any": "Any",
        "object": "Any", "void": "Nothing", "undefined": "Nothing", "never": "Nothing",
    },
    "java": {
        "String": "Text", "int": "Integer", "Integer": "Integer", "long": "Integer",
        "Long": "Integer", "short": "Integer", "Short": "Integer", "BigInteger": "Integer",
        "double": "Float", "Double": "Float", "float": "Float", "Float": "Float",
        "BigDecimal": "Decimal", "boolean": "Boolean", "Boolean": "Boolean",
        "Instant": "Timestamp", "LocalDateTime": "Timestamp", "ZonedDateTime": "Timestamp",
        "OffsetDateTime": "Timestamp", "Date": "Timestamp", "Duration": "Duration",
        "UUID": "UUID", "byte[]": "Bytes", "Object": "Any", "void": "Nothing", "Void": "Nothing",
        "char": "Text", "Character": "Text",
    },
    "rust": {
        "String": "Text", "str": "Text", "char": "Text", "i8": "Integer", "i16": "Integer",
        "i32": "Integer", "i64": "Integer", "i128": "Integer", "isize": "Integer",
        "u8": "Integer", "u16": "Integer", "u32": "Integer", "u64": "Integer",
        "u128": "Integer", "usize": "Integer", "f32": "Float", "f64": "Float",
        "bool": "Boolean", "Decimal": "Decimal", "rust_decimal::Decimal": "Decimal",
        "chrono::DateTime<chrono::Utc>": "Timestamp", "DateTime<Utc>": "Timestamp",
        "std::time::Duration": "Duration", "Duration": "Duration", "uuid::Uuid": "UUID",
        "Uuid": "UUID", "Vec<u8>": "Bytes", "serde_json::Value": "Any", "Value": "Any",
        "()": "Nothing",
    },
    "csharp": {
        "string": "Text", "String": "Text", "char": "Text", "int": "Integer", "long": "Integer",
        "short": "Integer", "Int32": "Integer", "Int64": "Integer", "uint": "Integer",
        "ulong": "Integer", "double": "Float", "float": "Float", "Double": "Float",
        "Single": "Float", "decimal": "Decimal", "Decimal": "Decimal", "bool": "Boolean",
        "Boolean": "Boolean", "DateTime": "Timestamp", "DateTimeOffset": "Timestamp",
        "TimeSpan": "Duration", "Guid": "UUID", "byte[]": "Bytes", "object": "Any",
        "dynamic": "Any", "void": "Nothing",
    },
}

_LIST_CONTAINERS = {
    "python": {"List", "list", "Sequence", "Iterable", "Tuple", "tuple", "Set", "set", "FrozenSet", "Collection"},
    "typescript": {"Array", "ReadonlyArray", "Set"},
    "java": {"List", "ArrayList", "LinkedList", "Collection", "Iterable", "Set", "HashSet", "Stream"},
    "rust": {"Vec", "VecDeque", "HashSet", "BTreeSet"},
    "csharp": {"List", "IList", "IEnumerable", "ICollection", "IReadOnlyList", "IReadOnlyCollection", "HashSet", "ISet"},
}
_OPTIONAL_CONTAINERS = {
    "python": {"Optional"},
    "java": {"Optional"},
    "rust": {"Option"},
    "csharp": {"Nullable"},
}
_MAP_CONTAINERS = {
    "python": {"Dict", "dict", "Mapping", "MutableMapping"},
    "typescript": {"Record", "Map"},
    "java": {"Map", "HashMap", "TreeMap", "LinkedHashMap"},
    "rust": {"HashMap", "BTreeMap"},
    "csharp": {"Dictionary", "IDictionary", "IReadOnlyDictionary"},
}
# Wrappers that carry no structural meaning for a spec.
_TRANSPARENT_CONTAINERS = {
    "python": {"Awaitable", "Coroutine", "Final", "ClassVar"},
    "typescript": {"Promise", "Readonly", "Partial"},
    "java": {"CompletableFuture", "Future"},
    "rust": {"Box", "Rc", "Arc", "RefCell", "Mutex", "Cow"},
    "csharp": {"Task", "ValueTask"},
}

_OPENERS = "<[({"
_CLOSERS = ">])}"


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split ``text`` on ``separator`` where it is not nested in brackets.

    Arrows (``->``, ``=>``) never count as closing angle brackets.
    """
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        prev = text[i - 1] if i else ""
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS and not (char == ">" and prev in "-="):
            depth = max(depth - 1, 0)
        if depth == 0 and text.startswith(separator, i):
            parts.append("".join(current))
            current = []
            i += len(separator)
            continue
        current.append(char)
        i += 1
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def unwrap_generic(text: str, opener: str = "<", closer: str = ">") -> Optional[Tuple[str, str]]:
    """Return ``(head, inner)`` when ``text`` is exactly ``head<inner>``."""
    start = text.find(opener)
    if start <= 0 or not text.endswith(closer):
        return None
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0 and index != len(text) - 1:
                return None
    return text[:start].strip(), text[start + 1:-1].strip()


def reverse_map_type(concrete: str, language: str) -> str:
    """Turn a concrete type spelled in ``language`` back into a pseudo-type."""
    canonical = _require_language(language)
    return _reverse(_clean(concrete, canonical), canonical)


def _clean(text: str, language: str) -> str:
    text = (text or "").strip()
    if language == "rust":
        text = re.sub(r"^&\s*(?:'\w+\s+)?(?:mut\s+)?", "", text)
        text = re.sub(r"^(?:impl|dyn)\s+", "", text)
    if language == "go":
        text = text.lstrip("&")
        if text.startswith("..."):
            text = "[]" + text[3:]
    if language == "java":
        text = re.sub(r"@\w+\s*", "", text)
        text = re.sub(r"^final\s+", "", text)
        if text.endswith("..."):
            text = text[:-3].strip() + "[]"
    return text.strip()


def _reverse(text: str, language: str) -> str:
    text = text.strip()
    if not text:
        return ""

    flat = REVERSE_FLAT[language]
    if text in flat:
        return flat[text]

    if language == "go":
        if text.startswith("[]"):
            return f"List of {_reverse(text[2:], language)}"
        if text.startswith("*"):
            return f"Optional {_reverse(text[1:], language)}"
        if text.startswith("map[") and "]" in text:
            close = text.index("]")
            key, value = text[4:close], text[close + 1:]
            return f"Map of {_reverse(key, language)} to {_reverse(value, language)}"
        if text.startswith("chan "):
            return f"List of {_reverse(text[5:], language)}"
        return text

    if language == "python":
        union = split_top_level(text, "|")
        if len(union) > 1:
            return _reverse_union(union, language, ("None",))
        generic = unwrap_generic(text, "[", "]")
        if generic:
            head, inner = generic
            head = head.split(".")[-1]
            if head == "Union":
                return _reverse_union(split_top_level(inner), language, ("None",))
            return _reverse_generic(head, split_top_level(inner), language) or text
        return text.split(".")[-1] if text.startswith("typing.") else text

    if language == "typescript":
        union = split_top_level(text, "|")
        if len(union) > 1:
            return _reverse_union(union, language, ("null", "undefined"))
        if text.endswith("[]"):
            return f"List of {_reverse(text[:-2], language)}"
        if text.startswith("(") and text.endswith(")"):
            return _reverse(text[1:-1], language)
        generic = unwrap_generic(text)
        if generic:
            head, inner = generic
            return _reverse_generic(head, split_top_level(inner), language) or text
        return text

    if language == "csharp":
        if text.endswith("?"):
            return f"Optional {_reverse(text[:-1], language)}"
        if text.endswith("[]"):
            return f"List of {_reverse(text[:-2], language)}"
        generic = unwrap_generic(text)
        if generic:
            head, inner = generic
            return _reverse_generic(head, split_top_level(inner), language) or text
        return text

    if language == "java":
        if text.endswith("[]"):
            return f"List of {_reverse(text[:-2], language)}"
        generic = unwrap_generic(text)
        if generic:
            head, inner = generic
            return _reverse_generic(head.split(".")[-1], split_top_level(inner), language) or text
        return text

    # rust
    if text.startswith("[") and text.endswith("]"):
        return f"List of {_reverse(text[1:-1].split(';')[0], language)}"
    if text.startswith("&"):
        return _reverse(_clean(text, language), language)
    generic = unwrap_generic(text)
    if generic:
        head, inner = generic
        head = head.split("::")[-1]
        if head == "Result":
            args = split_top_level(inner)
            return _reverse(args[0], language) if args else text
        return _reverse_generic(head, split_top_level(inner), language) or text
    return text


def _reverse_union(members: List[str], language: str, null_names: Tuple[str, ...]) -> str:
    non_null = [m for m in members if m not in null_names]
    if len(non_null) == 1:
        inner = _reverse(non_null[0], language)
        return f"Optional {inner}" if len(non_null) < len(members) else inner
    return " | ".join(members)


def _reverse_generic(head: str, args: List[str], language: str) -> Optional[str]:
    if head in _TRANSPARENT_CONTAINERS.get(language, ()) and args:
        return _reverse(args[0], language)
    if head in _OPTIONAL_CONTAINERS.get(language, ()) and args:
        return f"Optional {_reverse(args[0], language)}"
    if head in _MAP_CONTAINERS.get(language, ()) and len(args) == 2:
        return f"Map of {_reverse(args[0], language)} to {_reverse(args[1], language)}"
    if head in _LIST_CONTAINERS.get(language, ()) and args:
        return f"List of {_reverse(args[0], language)}"
    return None
