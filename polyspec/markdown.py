"""Render specs back to the markdown grammar the parser reads.

``render_spec`` writes a ``Spec``; ``render_project`` first lifts an
``ExtractedProject`` into a ``Spec`` so imported source trees produce the
same document shape as hand-written specs.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .literals import format_literal
from .models import (
    ExtractedProject,
    ExtractedType,
    Field,
    Function,
    Param,
    Return,
    Spec,
    TestCase,
    TypeDef,
)

WARNINGS_HEADING = "Extraction Warnings"


def _member(name: str, type_name: str, description: str = "", required: bool = True,
            default: Optional[str] = None) -> str:
    if type_name and ("(" in type_name or ")" in type_name):
        line = f"`{name}`: `{type_name}`" + (f" - {description}" if description else "")
    else:
        line = f"`{name}`" + (f" ({type_name})" if type_name else "")
        if description:
            line += f": {description}"
    if not required:
        line += " (optional)"
    if default is not None and default != "":
        line += f" (defaults to {default})"
    return f"- {line}"


def _render_type(type_def: TypeDef) -> List[str]:
    lines = [f"### {type_def.name} ({type_def.kind})", ""]
    if type_def.description:
        lines += [type_def.description, ""]
    if type_def.kind == "alias":
        if type_def.alias_of:
            lines += [f"Alias of `{type_def.alias_of}`", ""]
        return lines
    if type_def.kind == "enum":
        for variant in type_def.fields:
            suffix = f": {variant.description}" if variant.description else ""
            lines.append(f"- `{variant.name}`{suffix}")
    else:
        for item in type_def.fields:
            lines.append(_member(item.name, item.type, item.description, item.required, item.default))
    if type_def.fields:
        lines.append("")
    return lines


def _render_function(function: Function) -> List[str]:
    modifiers = "".join(f" [{m}]" for m, on in (("async", function.is_async), ("pure", function.is_pure)) if on)
    lines = [f"### {function.name}{modifiers}", ""]
    if function.description:
        lines += [function.description, ""]
    if function.accepts:
        lines.append("**accepts:**")
        for param in function.accepts:
            lines.append(_member(param.name, param.type, param.description, default=param.default))
        lines.append("")
    if function.returns is not None and function.returns.type:
        suffix = f" - {function.returns.description}" if function.returns.description else ""
        lines += [f"**returns:** `{function.returns.type}`{suffix}", ""]
    if function.logic.strip():
        lines += ["**logic:**", "```", function.logic.strip("\n"), "```", ""]
    if function.errors:
        lines.append("**errors:**")
        lines += [f"- {error}" for error in function.errors]
        lines.append("")
    return lines


def _render_tests(tests: List[TestCase]) -> List[str]:
    groups: Dict[str, List[TestCase]] = {}
    for test in tests:
        groups.setdefault(test.function, []).append(test)

    lines: List[str] = []
    for function, cases in groups.items():
        lines += [f"### {function}", ""]
        for index, case in enumerate(cases, start=1):
            lines += [f"#### test: {case.name or f'{function} case {index}'}", ""]
            if case.given is not None:
                lines.append(f"- given: {format_literal(case.given)}")
            if case.when:
                lines.append(f"- when: {case.when}")
            if case.expect is not None:
                lines.append(f"- expect: {format_literal(case.expect)}")
            lines.append("")
    return lines


def render_spec(spec: Spec, warnings: Optional[List[str]] = None) -> str:
    """Render ``spec`` as markdown that ``parse_spec`` reads back.

    ``warnings`` become a trailing section, which a re-parse keeps as
    overview text.
    """
    lines = [f"# {spec.name}", ""]
    if spec.description:
        lines += [spec.description, ""]

    meta = [(key, getattr(spec, key)) for key in ("version", "author", "license") if getattr(spec, key)]
    if meta:
        lines += ["## Meta", ""]
        lines += [f"- {key}: {value}" for key, value in meta]
        lines.append("")

    if spec.overview:
        lines += [spec.overview.strip(), ""]

    lines += ["## Target Languages", ""]
    lines += [f"- {language}" for language in spec.target_languages]
    lines.append("")

    if spec.types:
        lines += ["## Types", ""]
        for type_def in spec.types:
            lines += _render_type(type_def)

    if spec.functions:
        lines += ["## Functions", ""]
        for function in spec.functions:
            lines += _render_function(function)

    if spec.tests:
        lines += ["## Tests", ""]
        lines += _render_tests(spec.tests)

    if spec.dependencies:
        lines += ["## Dependencies", ""]
        for dependency in spec.dependencies:
            line = f"- {dependency.name}" + (f"@{dependency.version}" if dependency.version else "")
            if dependency.description:
                line += f": {dependency.description}"
            lines.append(line)
        lines.append("")

    if spec.configuration:
        lines += ["## Configuration", ""]
        for item in spec.configuration:
            lines.append(_member(item.name, item.type, item.description, default=item.default))
        lines.append("")

    if warnings:
        lines += [f"## {WARNINGS_HEADING}", ""]
        lines += [f"- {warning}" for warning in warnings]
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"


def _type_from_extracted(extracted: ExtractedType) -> TypeDef:
    if extracted.kind == "enum":
        fields = [Field(name=variant) for variant in extracted.variants]
    else:
        fields = [
            Field(name=f.name, type=f.type, description=f.description, required=not f.optional, default=f.default)
            for f in extracted.fields
        ]
    return TypeDef(
        name=extracted.name,
        kind=extracted.kind,
        description=extracted.description,
        fields=fields,
        alias_of=extracted.alias_of,
    )


def project_to_spec(project: ExtractedProject) -> Spec:
    """Lift an extracted project into the forward model."""
    spec = Spec(
        name=project.name,
        description=project.description,
        target_languages=[project.detected_language] if project.detected_language else [],
        types=[_type_from_extracted(t) for t in project.types],
        functions=[
            Function(
                name=f.name,
                description=f.description,
                accepts=[Param(name=p.name, type=p.type, description=p.description, default=p.default)
                         for p in f.parameters],
                returns=Return(type=f.returns) if f.returns else None,
                logic="\n".join(f.logic),
                is_async=f.is_async,
            )
            for f in project.functions
        ],
        tests=[TestCase(function=t.function, name=t.name, given=t.given, expect=t.expect) for t in project.tests],
        dependencies=list(project.dependencies),
    )
    return spec.normalize()


def render_project(project: ExtractedProject) -> str:
    return render_spec(project_to_spec(project), warnings=project.warnings)
