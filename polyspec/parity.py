"""Feature parity between implementations of the same spec.

Parity is a presence diff over names: a candidate implements a reference
feature when it declares a function or type with the same normalized name.
Behavioural equivalence is not checked.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .importer import Importer
from .models import ExtractedFunction, ExtractedProject, ExtractedType, Spec
from .parser import parse_spec_file
from .polyspec_logging import log_operation, log_parity_computed

logger = logging.getLogger("polyspec.parity")


def feature_id(name: str) -> str:
    """Normalized feature key: lower-cased with whitespace collapsed."""
    return re.sub(r"\s+", " ", name.strip().lower())


@dataclass(slots=True)
class Implementation:
    present: bool
    source_file: str = ""
    line_number: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"present": self.present, "sourceFile": self.source_file, "lineNumber": self.line_number}


@dataclass(slots=True)
class FeatureRecord:
    """One row of the feature matrix."""

    id: str
    name: str
    kind: str
    in_spec: bool = False
    implementations: Dict[str, Implementation] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "inSpec": self.in_spec,
            "implementations": {label: impl.to_dict() for label, impl in self.implementations.items()},
        }


@dataclass(slots=True)
class ParityGap:
    """A reference feature that at least one candidate lacks."""

    feature_id: str
    name: str
    kind: str
    missing_in: List[str] = field(default_factory=list)
    reference_file: str = ""
    reference_line: int = 0
    fix_hint: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "featureId": self.feature_id,
            "name": self.name,
            "kind": self.kind,
            "missingIn": list(self.missing_in),
            "referenceFile": self.reference_file,
            "referenceLine": self.reference_line,
            "fixHint": self.fix_hint,
        }


@dataclass(slots=True)
class ParityReport:
    parity_score: float
    scores: Dict[str, float]
    reference_language: str
    feature_matrix: List[FeatureRecord] = field(default_factory=list)
    gaps: List[ParityGap] = field(default_factory=list)
    fix_instructions: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "parityScore": self.parity_score,
            "scores": dict(self.scores),
            "referenceLanguage": self.reference_language,
            "featureMatrix": [record.to_dict() for record in self.feature_matrix],
            "gaps": [gap.to_dict() for gap in self.gaps],
            "fixInstructions": self.fix_instructions,
        }


Feature = Union[ExtractedFunction, ExtractedType]


def _features(project: ExtractedProject) -> Dict[str, Feature]:
    """Functions then types, keyed by feature id; the first of each id wins."""
    features: Dict[str, Feature] = {}
    for item in [*project.functions, *project.types]:
        features.setdefault(feature_id(item.name), item)
    return features


def _fix_hint(feature: Feature) -> str:
    if isinstance(feature, ExtractedFunction):
        if feature.body.strip():
            return feature.body
        return "\n".join(f"- {step}" for step in feature.logic)
    if feature.kind == "enum":
        return "\n".join(f"- {variant}" for variant in feature.variants)
    if feature.kind == "alias":
        return f"alias of {feature.alias_of}"
    return "\n".join(f"- {f.name}: {f.type}" + (" (optional)" if f.optional else "") for f in feature.fields)


def compare(
    reference: ExtractedProject,
    candidates: Dict[str, ExtractedProject],
    reference_language: Optional[str] = None,
    spec: Optional[Spec] = None,
    reference_label: Optional[str] = None,
) -> ParityReport:
    """Compare every candidate against the reference project's feature set.

    Raises ``ValueError`` when ``candidates`` is empty.
    """
    if not candidates:
        raise ValueError("Parity needs at least one candidate project")

    language = reference_language or reference.detected_language
    reference_label = reference_label or language or reference.name
    if reference_label in candidates:
        reference_label = f"{reference_label} (reference)"
    spec_ids = set()
    if spec is not None:
        spec_ids = {feature_id(item.name) for item in [*spec.functions, *spec.types]}

    logger.info(f"Comparing {len(candidates)} candidate(s) against {reference_label}")
    reference_features = _features(reference)
    candidate_features = {label: _features(project) for label, project in candidates.items()}

    matrix: List[FeatureRecord] = []
    gaps: List[ParityGap] = []
    found = {label: 0 for label in candidates}
    for key, feature in reference_features.items():
        kind = "function" if isinstance(feature, ExtractedFunction) else "type"
        record = FeatureRecord(id=key, name=feature.name, kind=kind, in_spec=key in spec_ids)
        record.implementations[reference_label] = Implementation(True, feature.source_file, feature.line_number)
        missing = []
        for label, features in candidate_features.items():
            match = features.get(key)
            if match is None:
                record.implementations[label] = Implementation(False)
                missing.append(label)
            else:
                record.implementations[label] = Implementation(True, match.source_file, match.line_number)
                found[label] += 1
        matrix.append(record)
        if missing:
            gaps.append(ParityGap(
                feature_id=key,
                name=feature.name,
                kind=kind,
                missing_in=missing,
                reference_file=feature.source_file,
                reference_line=feature.line_number,
                fix_hint=_fix_hint(feature),
            ))

    total = len(reference_features)
    scores = {label: (found[label] / total if total else 1.0) for label in candidates}
    parity_score = sum(scores.values()) / len(scores)

    report = ParityReport(
        parity_score=parity_score,
        scores=scores,
        reference_language=language,
        feature_matrix=matrix,
        gaps=gaps,
    )
    report.fix_instructions = build_fix_instructions(report, reference_label)
    log_parity_computed(language, parity_score, candidates=len(candidates), features=total, gaps=len(gaps))
    return report


def build_fix_instructions(report: ParityReport, reference_label: str) -> str:
    """Markdown checklist telling each candidate what to add, with reference hints."""
    lines = ["# Parity Fix Instructions", "", f"Reference implementation: {reference_label} "
             f"({report.reference_language})", ""]
    if not report.gaps:
        lines.append("All candidates implement every reference feature.")
        return "\n".join(lines) + "\n"

    for label, score in report.scores.items():
        missing = [gap for gap in report.gaps if label in gap.missing_in]
        if not missing:
            continue
        lines += [f"## {label} ({score:.0%} parity)", ""]
        for gap in missing:
            lines.append(f"### Add {gap.kind} `{gap.name}`")
            lines.append("")
            if gap.reference_file:
                lines.append(f"Reference: `{gap.reference_file}:{gap.reference_line}`")
                lines.append("")
            if gap.fix_hint:
                lines += ["```", gap.fix_hint, "```", ""]
    return "\n".join(lines).rstrip("\n") + "\n"


def _labels(paths: Sequence[Path]) -> List[str]:
    labels: List[str] = []
    for path in paths:
        label = path.name or str(path)
        candidate, suffix = label, 2
        while candidate in labels:
            candidate = f"{label}-{suffix}"
            suffix += 1
        labels.append(candidate)
    return labels


def check_parity(
    spec_path: Union[str, Path],
    projects: Sequence[Union[str, Path]],
    importer: Optional[Importer] = None,
) -> ParityReport:
    """Extract every project directory and compare them against the first one.

    The spec marks which features it declares; it does not change the score.
    """
    if len(projects) < 2:
        raise ValueError("Parity needs a reference project and at least one candidate")
    importer = importer or Importer()
    spec = parse_spec_file(spec_path).spec

    paths = [Path(p).expanduser().resolve() for p in projects]
    labels = _labels(paths)
    with log_operation("check_parity", spec=spec.name, projects=len(paths)):
        extracted = [importer.extract(path) for path in paths]
        return compare(
            extracted[0],
            dict(zip(labels[1:], extracted[1:])),
            spec=spec,
            reference_label=labels[0],
        )
