import re
from dataclasses import dataclass
from enum import Enum

from app.core.logging_config import get_logger
from app.services.normalizer import UNKNOWN, CanonicalStudent

log = get_logger("classifier")


class Category(str, Enum):
    BBA = "BBA"
    PG = "PG"
    UG = "UG"
    STUDENT = "STUDENT"


# Roll-number program markers, checked in order. A new admission cycle with
# a new program code needs a row here.
CATEGORY_RULES: list[tuple[str, Category]] = [
    ("BBA", Category.BBA),
    ("111NAC", Category.PG),
    ("NAC24", Category.UG),
]

ARTS_DEPARTMENTS = frozenset({
    "Economics",
    "Education",
    "English",
    "History",
    "Odia",
    "Political Science",
    "Psychology",
    "Sanskrit",
})

SCIENCE_DEPARTMENTS = frozenset({
    "Botany",
    "Chemistry",
    "Geology",
    "Mathematics",
    "Physics",
    "Zoology",
})

_BATCH_IN_ROLL = re.compile(r"(?:BBA|NAC)(\d{2})")

_TYPE_LABELS = {
    Category.BBA: "BBA Student",
    Category.UG: "UG Student",
    Category.PG: "PG Student",
    Category.STUDENT: "Student",
}


@dataclass(frozen=True)
class Classification:
    category: Category
    stream: str
    batch: int | None

    @property
    def is_pg(self) -> bool:
        return self.category is Category.PG

    @property
    def student_type_label(self) -> str:
        return _TYPE_LABELS[self.category]

    @property
    def display_stream(self) -> str:
        return self.stream or self.category.value


def category_for_roll(roll_no: str) -> Category:
    for marker, category in CATEGORY_RULES:
        if marker in roll_no:
            return category
    return Category.STUDENT


def stream_for(student: CanonicalStudent) -> str:
    if student.stream is not UNKNOWN:
        return str(student.stream)
    if student.department is UNKNOWN:
        return ""
    department = str(student.department).strip()
    if department in ARTS_DEPARTMENTS:
        return "ARTS"
    if department in SCIENCE_DEPARTMENTS:
        return "SCIENCE"
    return department


def batch_for(student: CanonicalStudent) -> int | None:
    if student.batch is not UNKNOWN:
        try:
            return int(str(student.batch).strip()[:4])
        except ValueError:
            log.debug("Unparseable batch %r for %s", student.batch, student.autonomous_roll_no)
    match = _BATCH_IN_ROLL.search(student.autonomous_roll_no)
    if match:
        return 2000 + int(match.group(1))
    return None


def classify(student: CanonicalStudent) -> Classification:
    result = Classification(
        category=category_for_roll(student.autonomous_roll_no),
        stream=stream_for(student),
        batch=batch_for(student),
    )
    log.debug("Classified %s as %s", student.autonomous_roll_no, result)
    return result
