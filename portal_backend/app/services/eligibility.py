from dataclasses import dataclass

PHOTO_REQUIREMENT = "Please upload your profile photo"
EXTERNAL_ID_REQUIREMENT = "Please register your ABC ID"


def can_export(has_photo: bool, has_external_id: bool) -> bool:
    return bool(has_photo) and bool(has_external_id)


def missing_requirements(has_photo: bool, has_external_id: bool) -> list[str]:
    missing = []
    if not has_photo:
        missing.append(PHOTO_REQUIREMENT)
    if not has_external_id:
        missing.append(EXTERNAL_ID_REQUIREMENT)
    return missing


def restriction_message(has_photo: bool, has_external_id: bool) -> str:
    """Empty string exactly when the download is allowed."""
    return " and ".join(missing_requirements(has_photo, has_external_id))


@dataclass
class EligibilityState:
    has_profile_photo: bool
    has_external_id: bool

    @property
    def can_export(self) -> bool:
        return can_export(self.has_profile_photo, self.has_external_id)

    @property
    def restriction_message(self) -> str:
        return restriction_message(self.has_profile_photo, self.has_external_id)
