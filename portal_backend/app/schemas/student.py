from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class StudentOut(BaseModel):
    autonomous_roll_no: str
    exam_roll_no: str | None = None
    name: str | None = None
    department: str | None = None
    course: str | None = None
    dob: str | None = None
    external_id: str | None = None


class ClassificationOut(BaseModel):
    category: str
    stream: str
    batch: int | None = None
    is_pg: bool
    student_type: str


class LayoutColumnOut(BaseModel):
    header: str
    source_key: str
    value: str = ""


class LayoutOut(BaseModel):
    rule: str
    section_variant: str
    columns: list[LayoutColumnOut] = []


class EligibilityOut(BaseModel):
    has_profile_photo: bool
    has_external_id: bool
    can_export: bool
    restriction_message: str


class AdmitCardResponse(BaseModel):
    student: StudentOut
    classification: ClassificationOut
    layout: LayoutOut
    eligibility: EligibilityOut
    header: list[str]
    stream_label: str | None = None  # hidden for PG students
    department_label: str | None = None


class ProfileRow(BaseModel):
    label: str
    value: str


class ProfileResponse(BaseModel):
    student: StudentOut
    student_type: str
    personal: list[ProfileRow]
    academic: list[LayoutColumnOut] = []
    has_profile_photo: bool


class PhotoResponse(BaseModel):
    autonomous_roll_no: str
    content_type: str
    size: int
    updated_at: datetime | None = None


class ExternalIdRequest(BaseModel):
    abc_id: str = Field(..., min_length=1, max_length=32, alias="abcId")

    model_config = {"populate_by_name": True}

    @field_validator("abc_id")
    @classmethod
    def strip_abc_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter your ABC ID")
        return value


class ExternalIdResponse(BaseModel):
    autonomous_roll_no: str
    abc_id: str
    message: str | None = None
