from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.services.dates import normalize_dob


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    autonomous_roll_no: str = Field(..., min_length=1, alias="autonomousRollNo")
    dob: str

    @field_validator("autonomous_roll_no")
    @classmethod
    def strip_roll_no(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter your roll number")
        return value

    @field_validator("dob")
    @classmethod
    def check_dob(cls, value: str) -> str:
        return normalize_dob(value)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: dict


class SessionOut(BaseModel):
    session_id: int
    autonomous_roll_no: str
    user: dict
