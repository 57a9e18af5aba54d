from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Upstream sends camelCase; the portal answers in snake_case
_UPSTREAM = ConfigDict(
    alias_generator=AliasGenerator(validation_alias=to_camel),
    populate_by_name=True,
)

Mark = float | str | None


def as_text(value):
    """Numbers arrive where text is expected (roll numbers, subject codes); render them as text."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class MarksheetCourse(BaseModel):
    model_config = _UPSTREAM

    course_type: str | None = None
    subject_name: str | None = None
    subject_code: str | None = None
    credit: float | None = None
    grade: str | None = None
    grade_point: float | None = None
    credit_point: float | None = None
    marks: Mark = None
    theory: Mark = None
    internal: Mark = None
    practical: Mark = None
    midsem: Mark = None
    endsem: Mark = None

    @field_validator("course_type", "subject_name", "subject_code", "grade", mode="before")
    @classmethod
    def numbers_as_text(cls, value):
        return as_text(value)


class MarksheetRecord(BaseModel):
    model_config = _UPSTREAM

    id: str | None = Field(None, validation_alias=AliasChoices("_id", "id"))
    semester: int | str
    courses: list[MarksheetCourse] = []
    total_credits: float | None = None
    total_credit_points: float | None = None
    sgpa: float | None = None
    percentage: float | None = None
    classification: str | None = None
    published_at: str | None = None

    @field_validator("id", "classification", "published_at", mode="before")
    @classmethod
    def numbers_as_text(cls, value):
        return as_text(value)


class StudentInfo(BaseModel):
    name: str | None = None
    autonomous_roll_no: str
    roll_no: str | None = None
    department: str | None = None
    abc_id: str | None = None

    @field_validator("name", "autonomous_roll_no", "roll_no", "department", "abc_id", mode="before")
    @classmethod
    def numbers_as_text(cls, value):
        return as_text(value)


class TotalsCheck(BaseModel):
    credits_sum: float
    credit_points_sum: float
    consistent: bool


class MarksheetView(BaseModel):
    record: MarksheetRecord
    totals: TotalsCheck
    columns: list[str]
    column_keys: list[str]
    section_variant: str


class MarksheetListResponse(BaseModel):
    student: StudentInfo | None = None
    marksheets: list[MarksheetView] = []


class GradingBand(BaseModel):
    grade: str
    marks_range: str
    grade_points: int


class GradeSheetResponse(BaseModel):
    exam_title: str
    document_type: str = "GRADE SHEET"
    semester: int | str
    student: StudentInfo
    college: str
    medium_of_exam: str = "English"
    columns: list[str]
    column_keys: list[str]
    section_variant: str
    rows: list[MarksheetCourse]
    total_credits: float | None = None
    total_credit_points: float | None = None
    totals_consistent: bool
    result: str | None = None
    sgpa: float | None = None
    grading_system: list[GradingBand]
    publication_date: str | None = None
