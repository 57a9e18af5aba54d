import re

_DIGITS_ONLY = re.compile(r"\D")
_DMY = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")
_ISO = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_DAYS_IN_MONTH = [31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]


def format_dob_input(value: str) -> str:
    """Turn typed digits into DD-MM-YYYY as the student types (``01012005`` -> ``01-01-2005``)."""
    digits = _DIGITS_ONLY.sub("", value or "")[:8]
    formatted = digits[:2]
    if len(digits) >= 3:
        formatted += "-" + digits[2:4]
    if len(digits) >= 5:
        formatted += "-" + digits[4:8]
    return formatted


def is_leap_year(year: int) -> bool:
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def is_valid_dob(value: str) -> bool:
    match = _DMY.match(value or "")
    if not match:
        return False
    day, month, year = (int(part) for part in match.groups())
    if not 1 <= month <= 12 or not 1900 <= year <= 2100 or day < 1:
        return False
    if month == 2:
        return day <= (29 if is_leap_year(year) else 28)
    return day <= _DAYS_IN_MONTH[month - 1]


def normalize_dob(value: str) -> str:
    """Accept DDMMYYYY, DD-MM-YYYY, DD/MM/YYYY or YYYY-MM-DD; return DD-MM-YYYY.

    Raises ``ValueError`` with a user-facing message when the date is invalid.
    """
    raw = (value or "").strip()
    if not raw:
        raise ValueError("Please enter your date of birth")
    iso = _ISO.match(raw)
    if iso:
        year, month, day = iso.groups()
        candidate = f"{day.zfill(2)}-{month.zfill(2)}-{year}"
    else:
        candidate = format_dob_input(raw)
    if not is_valid_dob(candidate):
        raise ValueError("Date must be in DD-MM-YYYY format (e.g., 15-07-2002)")
    return candidate
