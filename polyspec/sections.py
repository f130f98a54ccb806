"""Split a markdown spec into its named top-level sections.

The splitter only understands the heading tree. It buckets the body of every
recognized level-2 section under a canonical key and keeps everything else,
so prose-heavy documents lose nothing on the way to the spec builder.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import MissingNameError

SECTION_ALIASES: Dict[str, str] = {
    "meta": "meta",
    "metadata": "meta",
    "target languages": "target_languages",
    "target language": "target_languages",
    "languages": "target_languages",
    "types": "types",
    "functions": "functions",
    "tests": "tests",
    "test cases": "tests",
    "dependencies": "dependencies",
    "configuration": "configuration",
    "config": "configuration",
}

HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*$")
FENCE_RE = re.compile(r"^\s*(```|~~~)")


@dataclass(slots=True)
class Heading:
    level: int
    text: str


@dataclass(slots=True)
class SpecDocument:
    """Result of splitting one markdown document."""

    name: str
    preamble: str = ""
    sections: Dict[str, str] = field(default_factory=dict)
    extra_sections: List[Tuple[str, str]] = field(default_factory=list)

    def section(self, key: str) -> str:
        return self.sections.get(key, "")

    def overview(self) -> str:
        """Unrecognized sections joined back into markdown, in document order."""
        blocks = []
        for heading, body in self.extra_sections:
            body = body.strip()
            blocks.append(f"## {heading}\n\n{body}" if body else f"## {heading}")
        return "\n\n".join(blocks)


def parse_heading(line: str) -> Optional[Heading]:
    """Return the heading on ``line``, with closing hashes stripped, or None."""
    match = HEADING_RE.match(line)
    if not match:
        return None
    text = re.sub(r"\s+#+$", "", match.group(2)).strip()
    if not text:
        return None
    return Heading(len(match.group(1)), text)


def iter_lines_outside_fences(text: str):
    """Yield ``(line, in_fence)`` pairs; fence delimiter lines count as fenced."""
    in_fence = False
    marker = ""
    for line in text.splitlines():
        fence = FENCE_RE.match(line)
        if fence and (not in_fence or fence.group(1) == marker):
            if in_fence:
                in_fence = False
                yield line, True
                continue
            in_fence = True
            marker = fence.group(1)
            yield line, True
            continue
        yield line, in_fence


def canonical_section(heading: str) -> Optional[str]:
    key = re.sub(r"\s+", " ", heading.strip().rstrip(":").strip().lower())
    return SECTION_ALIASES.get(key)


def split_sections(markdown: str) -> SpecDocument:
    """Bucket ``markdown`` by recognized level-2 heading.

    Raises ``MissingNameError`` when the document has no level-1 heading.
    """
    name: Optional[str] = None
    preamble: List[str] = []
    recognized: Dict[str, List[str]] = {}
    extras: List[Tuple[str, List[str]]] = []
    current: Optional[List[str]] = None

    for line, in_fence in iter_lines_outside_fences(markdown):
        heading = None if in_fence else parse_heading(line)
        if heading and heading.level == 1 and name is None:
            name = heading.text
            current = preamble
            continue
        if heading and heading.level <= 2:
            # A later level-1 heading is never a recognized section.
            key = canonical_section(heading.text) if heading.level == 2 else None
            if key is None:
                extras.append((heading.text, []))
                current = extras[-1][1]
            else:
                bucket = recognized.setdefault(key, [])
                if bucket:
                    bucket.append("")
                current = bucket
            continue
        if current is not None:
            current.append(line)

    if name is None:
        raise MissingNameError()

    return SpecDocument(
        name=name,
        preamble="\n".join(preamble).strip(),
        sections={key: "\n".join(lines).strip("\n") for key, lines in recognized.items()},
        extra_sections=[(heading, "\n".join(lines).strip("\n")) for heading, lines in extras],
    )


def split_subsections(body: str, level: int = 3) -> List[Tuple[str, str]]:
    """Split a section body on headings of exactly ``level``.

    Text before the first such heading is returned under an empty title.
    Deeper headings stay inside the enclosing block.
    """
    blocks: List[Tuple[str, List[str]]] = [("", [])]
    for line, in_fence in iter_lines_outside_fences(body):
        heading = None if in_fence else parse_heading(line)
        if heading and heading.level == level:
            blocks.append((heading.text, []))
            continue
        blocks[-1][1].append(line)
    result = [(title, "\n".join(lines).strip("\n")) for title, lines in blocks]
    if not result[0][1].strip():
        result = result[1:]
    return result
