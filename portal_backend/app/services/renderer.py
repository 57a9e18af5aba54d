"""
Draws portal documents onto a single tall Pillow image.

Coordinates are given at the 750px design width and multiplied by the render
scale, so a scale of 2 produces a 1500px wide surface.
"""

import re
from functools import lru_cache
from io import BytesIO

from PIL import Image, ImageDraw, ImageFont, ImageOps

from app.core.config import settings
from app.schemas.marksheet import GradeSheetResponse, MarksheetRecord, MarksheetView, StudentInfo
from app.services.classifier import Classification
from app.services.layout import DocumentLayout
from app.services.normalizer import CanonicalStudent

DESIGN_WIDTH = 750
_MARGIN = 24
_BLACK = (0, 0, 0)
_GREY = (110, 110, 110)
_HEADER_FILL = (235, 235, 235)

ADMIT_CARD_RULES = [
    "The examination shall be held as per the date and time notified earlier.",
    "Candidate suffering from any infectious disease must intimate the Superintendent and apply for "
    "separate sitting arrangement much ahead of the Examination sitting.",
    "Candidates shall bring their own blue pen and mathematical instruments. They shall not be allowed "
    "to exchange the same in the Examination Hall.",
    "Candidates must come in College Uniform carrying their Identity Card and Examination Admit Card "
    "failing which they shall not be allowed to sit for the Examination.",
    "Candidates must not carry books, notes, purses/wallet with written or blank papers, mobile phones, "
    "digital watches or electronic gadgets in to the examination premises.",
    "Candidates shall be checked at the gate for Examination and in their seats during Examination and "
    "they cannot deny such checks as and when necessary.",
    "Candidates must reach the gate at least 15 minutes before the commencement of the Examination for "
    "such checking. No Candidates shall be allowed entry half an hour after the examination starts. The "
    "principal/Center Superintendent may condone another half an hour if the case of coming late is "
    "genuine. In no circumstances shall one be allowed after one hour.",
    "A candidate shall not be allowed for temporary absence nor having the hall permanently in the "
    "first hour of the Examination.",
    "A candidate shall not be avail of temporary absence more than two times and beyond three minutes "
    "each time. No one shall be allowed temporary absence in the last half an hour. No candidates shall "
    "be allowed to leave hall in the last fifteen minutes of the sitting.",
    "It is candidate's responsibility to handover his/her answer scripts duly stitched to the invigilator.",
    "Candidates shall write their Roll Nos., Regd. Nos., Subject, Paper etc. in the specified for the "
    "purpose writing Roll Nos. or leaving any identification marks anywhere not specified shall be "
    "liable to expulsion/booked under malpractices.",
    "Candidates shall maintain perfect discipline and must not use any incriminating material nor "
    "disturb other candidates in the hall.",
    "Infringement of any of the Examination rules above or as laid in the rules and regulations of "
    "Examination shall be punished as per provision.",
]

GRADE_LEGEND = "O (10): 90-100   A+ (9): 80-89   A (8): 70-79   B+ (7): 60-69   B (6): 50-59   C (5): 40-49   P (4): 35-39   F (0): Below 35"


@lru_cache(maxsize=32)
def _font(size_px: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    return ImageFont.load_default(size=size_px)


def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _cell(value) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, float):
        return f"{value:.2f}" if not value.is_integer() else str(int(value))
    return str(value)


class Surface:
    """A white page that grows downwards as content is added."""

    def __init__(self, width: int = DESIGN_WIDTH, scale: float | None = None):
        self.scale = scale if scale is not None else settings.render_scale
        self.width = int(width * self.scale)
        self.margin = self.px(_MARGIN)
        self.image = Image.new("RGB", (self.width, self.px(1200)), "white")
        self.draw = ImageDraw.Draw(self.image)
        self.y = self.margin

    def px(self, value: float) -> int:
        return int(round(value * self.scale))

    def font(self, size: int):
        return _font(self.px(size))

    def _ensure(self, extra: int):
        needed = self.y + extra + self.margin
        if needed <= self.image.height:
            return
        grown = Image.new("RGB", (self.width, max(needed, self.image.height * 2)), "white")
        grown.paste(self.image, (0, 0))
        self.image = grown
        self.draw = ImageDraw.Draw(grown)

    def line_height(self, size: int) -> int:
        return self.px(size * 1.4)

    def wrap(self, text: str, size: int, width: int) -> list[str]:
        font = self.font(size)
        lines: list[str] = []
        for paragraph in str(text).split("\n"):
            current = ""
            for word in paragraph.split():
                candidate = f"{current} {word}".strip()
                if current and self.draw.textlength(candidate, font=font) > width:
                    lines.append(current)
                    current = word
                else:
                    current = candidate
            lines.append(current)
        return lines

    def spacer(self, height: int = 10):
        self._ensure(self.px(height))
        self.y += self.px(height)

    def centered(self, text: str, size: int = 14, fill=_BLACK):
        font = self.font(size)
        for line in self.wrap(text, size, self.width - 2 * self.margin):
            self._ensure(self.line_height(size))
            w = self.draw.textlength(line, font=font)
            self.draw.text(((self.width - w) / 2, self.y), line, font=font, fill=fill)
            self.y += self.line_height(size)

    def paragraph(self, text: str, size: int = 11, indent: int = 0, fill=_BLACK):
        font = self.font(size)
        x = self.margin + self.px(indent)
        for line in self.wrap(text, size, self.width - x - self.margin):
            self._ensure(self.line_height(size))
            self.draw.text((x, self.y), line, font=font, fill=fill)
            self.y += self.line_height(size)

    def detail_row(self, label: str, value: str, size: int = 12, label_width: int = 220, right: int = 0):
        font = self.font(size)
        x = self.margin
        value_x = x + self.px(label_width)
        value_width = self.width - value_x - self.margin - self.px(right)
        lines = self.wrap(value or "", size, value_width)
        height = self.line_height(size) * max(1, len(lines))
        self._ensure(height)
        self.draw.text((x, self.y), label, font=font, fill=_BLACK)
        self.draw.text((value_x - self.px(14), self.y), ":", font=font, fill=_BLACK)
        for i, line in enumerate(lines):
            self.draw.text((value_x, self.y + i * self.line_height(size)), line, font=font, fill=_BLACK)
        self.y += height

    def rule(self):
        self._ensure(self.px(6))
        self.draw.line((self.margin, self.y, self.width - self.margin, self.y), fill=_BLACK, width=max(1, self.px(1)))
        self.y += self.px(6)

    def table(self, headers: list[str], rows: list[list[str]], size: int = 10, weights: list[float] | None = None):
        if not headers:
            return
        weights = weights or [1.0] * len(headers)
        usable = self.width - 2 * self.margin
        total = sum(weights)
        widths = [int(usable * w / total) for w in weights]
        widths[-1] = usable - sum(widths[:-1])
        pad = self.px(4)
        font = self.font(size)
        for index, row in enumerate([headers] + rows):
            wrapped = [self.wrap(cell, size, max(1, w - 2 * pad)) for cell, w in zip(row, widths)]
            height = max(len(lines) for lines in wrapped) * self.line_height(size) + 2 * pad
            self._ensure(height)
            x = self.margin
            for lines, w in zip(wrapped, widths):
                box = (x, self.y, x + w, self.y + height)
                self.draw.rectangle(box, fill=_HEADER_FILL if index == 0 else None, outline=_BLACK)
                for i, line in enumerate(lines):
                    lw = self.draw.textlength(line, font=font)
                    self.draw.text(
                        (x + (w - lw) / 2, self.y + pad + i * self.line_height(size)),
                        line,
                        font=font,
                        fill=_BLACK,
                    )
                x += w
            self.y += height

    def paste_box(self, photo: bytes | None, x: int, y: int, width: int, height: int):
        box = (self.px(x), self.px(y), self.px(x + width), self.px(y + height))
        if photo:
            picture = Image.open(BytesIO(photo)).convert("RGB")
            picture = ImageOps.fit(picture, (box[2] - box[0], box[3] - box[1]))
            self.image.paste(picture, (box[0], box[1]))
        else:
            font = self.font(12)
            label = "PHOTO"
            lw = self.draw.textlength(label, font=font)
            self.draw.text(
                ((box[0] + box[2] - lw) / 2, (box[1] + box[3]) / 2 - self.px(8)),
                label,
                font=font,
                fill=_GREY,
            )
        self.draw.rectangle(box, outline=_BLACK, width=max(1, self.px(1)))

    def finish(self) -> Image.Image:
        return self.image.crop((0, 0, self.width, self.y + self.margin))


def _institution_header(surface: Surface, *subtitles: str):
    surface.centered(settings.institution_name, size=18)
    for subtitle in subtitles:
        surface.centered(subtitle, size=14)
    surface.spacer(6)
    surface.rule()
    surface.spacer(6)


def _unknown_layout_table(surface: Surface):
    surface.table(["SUBJECTS"], [["No subject layout is available for this record."]])


def render_admit_card(
    student: CanonicalStudent,
    classification: Classification,
    layout: DocumentLayout,
    photo: bytes | None = None,
    scale: float | None = None,
) -> Image.Image:
    surface = Surface(scale=scale)
    batch = classification.batch or ""
    _institution_header(
        surface,
        f"ADMIT CARD (BATCH -{batch})",
        f"EXAMINATION-{settings.examination_year}",
    )

    photo_top = surface.y / surface.scale
    photo_right = 130
    if not classification.is_pg:
        surface.detail_row("STREAM", classification.display_stream, right=photo_right)
    surface.detail_row("EXAM ROLL NUMBER", student.display("exam_roll_no", ""), right=photo_right)
    college_number = student.autonomous_roll_no
    department = student.known("department")
    if department:
        college_number = f"{college_number}    DEPARTMENT - {department}"
    surface.detail_row("COLLEGE NUMBER", college_number, right=photo_right)
    surface.detail_row("NAME OF THE STUDENT", student.display("name", ""), right=photo_right)
    surface.paste_box(photo, DESIGN_WIDTH - _MARGIN - 110, photo_top, 110, 130)
    surface.spacer(max(8, photo_top + 148 - surface.y / surface.scale))

    if layout.section_variant == "course-only":
        surface.detail_row("COURSE", student.display("course", ""))
    elif layout.is_unknown:
        _unknown_layout_table(surface)
    else:
        surface.table(
            [c.header for c in layout.columns],
            [[student.value(c.source_key) or "" for c in layout.columns]],
        )

    surface.spacer(12)
    surface.paragraph("I undertake to abide by the rules printed below.")
    surface.spacer(40)
    surface.paragraph("PRINCIPAL/CENTRE SUPERINTENDENT        Signature of the Student in Full        CONTROLLER OF EXAMINATIONS", size=10)
    surface.spacer(12)
    surface.centered("RULES FOR THE GUIDANCE OF THE CANDIDATES", size=13)
    for number, rule in enumerate(ADMIT_CARD_RULES, start=1):
        surface.paragraph(f"{number}. {rule}", size=10, indent=6)
    return surface.finish()


def _course_row(course, column_keys: list[str], index: int | None = None) -> list[str]:
    return [str(index) if key == "serial" else _cell(getattr(course, _snake(key), None)) for key in column_keys]


def _student_rows(surface: Surface, student: StudentInfo):
    surface.detail_row("NAME OF THE STUDENT", student.name or "N/A")
    surface.detail_row("COLLEGE ROLL NUMBER", student.autonomous_roll_no)
    surface.detail_row("EXAM ROLL NUMBER", student.roll_no or "N/A")
    surface.detail_row("DEPARTMENT", student.department or "N/A")


def render_marksheet(
    student: StudentInfo,
    view: MarksheetView,
    batch: int | None = None,
    scale: float | None = None,
) -> Image.Image:
    record: MarksheetRecord = view.record
    surface = Surface(scale=scale)
    _institution_header(
        surface,
        "EXAMINATION MARKSHEET",
        f"SEMESTER - {record.semester} (BATCH - {batch or ''})",
    )
    surface.centered(settings.institution_address, size=10, fill=_GREY)
    surface.spacer(8)
    _student_rows(surface, student)
    surface.detail_row("ACADEMIC YEAR", settings.academic_year)
    surface.spacer(10)

    rows = [_course_row(course, view.column_keys, index) for index, course in enumerate(record.courses, start=1)]
    weights = [2.5 if header == "Subject Name" else 1.0 for header in view.columns]
    surface.table(view.columns, rows, weights=weights)

    surface.spacer(12)
    surface.centered("Semester Summary", size=13)
    surface.table(
        ["Total Credits", "Total Credit Points", "SGPA", "Percentage", "Classification"],
        [[
            _cell(record.total_credits),
            _cell(record.total_credit_points),
            _cell(record.sgpa),
            f"{_cell(record.percentage)}%",
            record.classification or "-",
        ]],
    )
    surface.spacer(10)
    surface.paragraph("Grade Point System:", size=11)
    surface.paragraph(GRADE_LEGEND, size=10)
    return surface.finish()


def render_grade_sheet(sheet: GradeSheetResponse, scale: float | None = None) -> Image.Image:
    surface = Surface(scale=scale)
    surface.centered(sheet.exam_title, size=16)
    surface.centered(sheet.document_type, size=14)
    surface.spacer(6)
    surface.rule()
    surface.detail_row("Name", sheet.student.name or "N/A")
    surface.detail_row("Course", sheet.student.department or "N/A")
    surface.detail_row("ABC ID", sheet.student.abc_id or "N/A")
    surface.detail_row("College", sheet.college)
    surface.detail_row("Exam Roll No.", sheet.student.roll_no or "N/A")
    surface.detail_row("Registration No.", sheet.student.autonomous_roll_no)
    surface.detail_row("Medium of Exam", sheet.medium_of_exam)
    surface.spacer(10)

    rows = [_course_row(course, sheet.column_keys) for course in sheet.rows]
    totals = {"credit": sheet.total_credits, "creditPoint": sheet.total_credit_points}
    rows.append(["TOTAL"] + [_cell(totals[key]) if key in totals else "" for key in sheet.column_keys[1:]])
    weights = [2.5 if key == "subjectName" else 1.2 if key == "subjectCode" else 1.0 for key in sheet.column_keys]
    surface.table(sheet.columns, rows, weights=weights)
    surface.spacer(8)
    surface.detail_row("Result", sheet.result or "-")
    surface.detail_row("SGPA", _cell(sheet.sgpa))
    surface.spacer(8)
    surface.table(
        ["Grade", "Marks Secured from 100", "Grade Points"],
        [[band.grade, band.marks_range, str(band.grade_points)] for band in sheet.grading_system],
    )
    surface.spacer(10)
    surface.paragraph(f"Date of Publication {sheet.publication_date or ''}".strip())
    surface.paragraph("CONTROLLER OF EXAMINATIONS")
    return surface.finish()
