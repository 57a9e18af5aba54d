"""
Canonical view of the upstream student record.

Student documents were captured across several admission cycles, so the same
value can live under differently spelled keys. Each canonical field has an
ordered alias chain; the first present, non-empty value wins.
"""

from dataclasses import dataclass, field
from typing import Any

from app.core.errors import MissingIdentityError


class _Unknown:
    """Marker for a canonical field none of whose aliases carried a value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNKNOWN"


UNKNOWN = _Unknown()

IDENTITY_ALIASES = ("autonomousRollNo", "Autonomous Roll No")

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "exam_roll_no": ("rollNo", "College Roll No", "Roll No"),
    "name": ("name", "Name of the Students", "Applicant Name"),
    "department": ("Department", "department"),
    "course": ("Course", "course"),
    "batch": ("Batch", "batch"),
    "stream": ("Stream", "stream"),
    "dob": ("dob", "Date of Birth"),
    "father_name": ("Father Name", "fatherName"),
    "mother_name": ("Mother Name", "motherName"),
    "mobile": ("Mobile", "mobile"),
    "email": ("Email", "email"),
    "external_id": ("ABC_ID", "abcId"),
}


@dataclass
class CanonicalStudent:
    autonomous_roll_no: str
    exam_roll_no: Any = UNKNOWN
    name: Any = UNKNOWN
    department: Any = UNKNOWN
    course: Any = UNKNOWN
    batch: Any = UNKNOWN
    stream: Any = UNKNOWN
    dob: Any = UNKNOWN
    father_name: Any = UNKNOWN
    mother_name: Any = UNKNOWN
    mobile: Any = UNKNOWN
    email: Any = UNKNOWN
    external_id: Any = UNKNOWN
    # Flattened raw record; subject-slot lookups go through here
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def available_fields(self) -> set[str]:
        return {key for key, value in self.fields.items() if _present(value)}

    def value(self, key: str) -> str:
        raw = self.fields.get(key)
        return str(raw).strip() if _present(raw) else ""

    def display(self, name: str, default: str = "N/A") -> str:
        raw = getattr(self, name)
        return default if raw is UNKNOWN else str(raw)

    def known(self, name: str) -> str | None:
        raw = getattr(self, name)
        return None if raw is UNKNOWN else str(raw)


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def flatten_record(raw: dict, prefix: str = "") -> dict[str, Any]:
    """Flatten nested objects into dotted keys.

    The upstream store splits dotted column names such as ``VAC-201-I.C``
    into ``{"VAC-201-I": {"C": ...}}``; this puts them back.
    """
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten_record(value, name))
        else:
            flat[name] = value
    return flat


def first_present(raw: dict, aliases: tuple[str, ...]) -> Any:
    for alias in aliases:
        value = raw.get(alias)
        if _present(value):
            return value.strip() if isinstance(value, str) else value
    return UNKNOWN


def normalize(raw: dict) -> CanonicalStudent:
    if not isinstance(raw, dict):
        raise MissingIdentityError()
    roll = first_present(raw, IDENTITY_ALIASES)
    if roll is UNKNOWN:
        raise MissingIdentityError()

    values = {name: first_present(raw, aliases) for name, aliases in FIELD_ALIASES.items()}
    return CanonicalStudent(
        autonomous_roll_no=str(roll),
        fields=flatten_record(raw),
        **values,
    )
