"""
Document layout resolution.

Records carry no curriculum-version tag, so the layout is inferred from the
student's classification and from which optional subject fields the record
happens to carry. Rules are evaluated top to bottom; the first whose
predicate holds wins. Every document type ends with a catch-all rule.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from app.core.logging_config import get_logger
from app.services.classifier import Category, Classification

log = get_logger("layout")


class DocumentType(str, Enum):
    ADMIT_CARD = "admit_card"
    GRADE_SHEET = "grade_sheet"
    MARKSHEET = "marksheet"
    PROFILE = "profile"


@dataclass(frozen=True)
class LayoutColumn:
    header: str
    source_key: str


@dataclass(frozen=True)
class DocumentLayout:
    columns: tuple[LayoutColumn, ...]
    section_variant: str
    rule: str = ""

    @property
    def is_unknown(self) -> bool:
        return self.section_variant == UNKNOWN_VARIANT

    def source_keys(self) -> list[str]:
        return [c.source_key for c in self.columns]


UNKNOWN_VARIANT = "unknown"
UNKNOWN_LAYOUT = DocumentLayout(columns=(), section_variant=UNKNOWN_VARIANT, rule="default")

Predicate = Callable[[Classification, set[str]], bool]


@dataclass(frozen=True)
class LayoutRule:
    name: str
    document_type: DocumentType
    predicate: Predicate
    columns: tuple[LayoutColumn, ...] = field(default=())
    section_variant: str = "subjects"

    def layout(self) -> DocumentLayout:
        return DocumentLayout(columns=self.columns, section_variant=self.section_variant, rule=self.name)


def _codes(*codes: str) -> tuple[LayoutColumn, ...]:
    return tuple(LayoutColumn(header=code, source_key=code) for code in codes)


def _named(*pairs: tuple[str, str]) -> tuple[LayoutColumn, ...]:
    return tuple(LayoutColumn(header=header, source_key=key) for header, key in pairs)


# ── Subject code sets ─────────────────────────────────────────────────────────

BBA_FIRST_SEMESTER = _codes(
    "CC-101", "CC-102", "CC-103", "Multi Disciplinary-101", "AEC-101", "SEC-101", "VAC-101",
)
BBA_SECOND_SEMESTER = _codes(
    "CC-201", "CC-202", "CC-203", "Multi Disciplinary-201", "AEC-201", "SEC-201", "VAC-201-I.C",
)
PG_PRIMARY_PAPERS = _codes("PAPER-1.1", "PAPER-1.2", "PAPER-1.3", "PAPER-1.4", "PAPER-1.5")
PG_LEGACY_PAPERS = _codes("CP-101", "CP-102", "CP-103", "CP-104", "CP-105")
UG_FIRST_SEMESTER = _codes(
    "Major-1", "Major-2", "MINOR-1", "Multi Disciplinary-1", "AEC-1", "VAC-1",
)
UG_SECOND_SEMESTER = _codes(
    "Major-3", "Major-4", "MINOR-2", "Multi Disciplinary-2", "AEC-2", "SEC-I",
)

BBA_PROFILE = _named(
    ("CC-201", "CC-201"),
    ("CC-202", "CC-202"),
    ("CC-203", "CC-203"),
    ("Multi Disciplinary", "Multi Disciplinary-201"),
    ("AEC-201", "AEC-201"),
    ("SEC-201", "SEC-201"),
)
UG_PROFILE = _named(
    ("Major-3", "Major-3"),
    ("Major-4", "Major-4"),
    ("MINOR-2", "MINOR-2"),
    ("Multi Disciplinary", "Multi Disciplinary-2"),
    ("AEC-2", "AEC-2"),
    ("SEC-I", "SEC-I"),
)

GRADE_SHEET_COLUMNS = _named(
    ("SUBJECT CODE", "subjectCode"),
    ("COURSE", "courseType"),
    ("COURSE TITLE", "subjectName"),
    ("CREDIT", "credit"),
    ("GRADE", "grade"),
    ("GRADE POINT", "gradePoint"),
    ("CREDIT POINT", "creditPoint"),
)
MARKSHEET_COLUMNS = _named(
    ("S.No", "serial"),
    ("Subject Name", "subjectName"),
    ("Course Type", "courseType"),
    ("Credit", "credit"),
    ("Theory", "theory"),
    ("Internal", "internal"),
    ("Practical", "practical"),
    ("Total", "marks"),
    ("Grade", "grade"),
    ("GP", "gradePoint"),
    ("CP", "creditPoint"),
)
MARKSHEET_SPLIT_COLUMNS = _named(
    ("S.No", "serial"),
    ("Subject Name", "subjectName"),
    ("Course Type", "courseType"),
    ("Credit", "credit"),
    ("Mid Sem", "midsem"),
    ("End Sem", "endsem"),
    ("Total", "marks"),
    ("Grade", "grade"),
    ("GP", "gradePoint"),
    ("CP", "creditPoint"),
)


# ── Predicates ────────────────────────────────────────────────────────────────

def _is_bba(c: Classification, fields: set[str]) -> bool:
    return c.category is Category.BBA or c.stream == "BBA"


def _has_any(columns: tuple[LayoutColumn, ...]) -> Predicate:
    keys = {col.source_key for col in columns}
    return lambda c, fields: bool(keys & fields)


def _has_department(c: Classification, fields: set[str]) -> bool:
    return bool({"Department", "department"} & fields)


def _always(c: Classification, fields: set[str]) -> bool:
    return True


LAYOUT_RULES: list[LayoutRule] = [
    # Admit card
    LayoutRule(
        "bba-first-semester",
        DocumentType.ADMIT_CARD,
        lambda c, f: _is_bba(c, f) and c.batch == 2025,
        BBA_FIRST_SEMESTER,
    ),
    LayoutRule("bba-second-semester", DocumentType.ADMIT_CARD, _is_bba, BBA_SECOND_SEMESTER),
    LayoutRule(
        "pg-primary-papers",
        DocumentType.ADMIT_CARD,
        lambda c, f: c.is_pg and _has_any(PG_PRIMARY_PAPERS)(c, f),
        PG_PRIMARY_PAPERS,
        "papers",
    ),
    LayoutRule(
        "pg-legacy-papers",
        DocumentType.ADMIT_CARD,
        lambda c, f: c.is_pg and _has_any(PG_LEGACY_PAPERS)(c, f),
        PG_LEGACY_PAPERS,
        "papers",
    ),
    LayoutRule("pg-course-only", DocumentType.ADMIT_CARD, lambda c, f: c.is_pg, (), "course-only"),
    LayoutRule(
        "ug-first-semester",
        DocumentType.ADMIT_CARD,
        lambda c, f: c.batch == 2025 and _has_any(UG_FIRST_SEMESTER)(c, f),
        UG_FIRST_SEMESTER,
    ),
    LayoutRule("ug-second-semester", DocumentType.ADMIT_CARD, _has_department, UG_SECOND_SEMESTER),
    # Profile academic information
    LayoutRule("bba-profile", DocumentType.PROFILE, _is_bba, BBA_PROFILE, "chips"),
    LayoutRule("ug-profile", DocumentType.PROFILE, _has_any(UG_PROFILE), UG_PROFILE, "chips"),
    # Result documents
    LayoutRule("grade-sheet", DocumentType.GRADE_SHEET, _always, GRADE_SHEET_COLUMNS, "grades"),
    LayoutRule(
        "marksheet-midsem-endsem",
        DocumentType.MARKSHEET,
        lambda c, f: bool({"midsem", "endsem"} & f),
        MARKSHEET_SPLIT_COLUMNS,
        "midsem-endsem",
    ),
    LayoutRule("marksheet", DocumentType.MARKSHEET, _always, MARKSHEET_COLUMNS, "theory-internal-practical"),
]


def resolve_layout(
    classification: Classification,
    document_type: DocumentType,
    available_fields: set[str],
    rules: list[LayoutRule] | None = None,
) -> DocumentLayout:
    for rule in rules if rules is not None else LAYOUT_RULES:
        if rule.document_type is not document_type:
            continue
        if rule.predicate(classification, available_fields):
            log.debug("Layout %s -> %s", document_type.value, rule.name)
            return rule.layout()
    log.info(
        "No %s layout for category=%s batch=%s; using unknown layout",
        document_type.value,
        classification.category.value,
        classification.batch,
    )
    return UNKNOWN_LAYOUT
