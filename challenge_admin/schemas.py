"""Input validation for admin operations."""

import uuid
from datetime import date

from pydantic import BaseModel, EmailStr, Field, ValidationError, field_validator

from .models import MealType
from .schedule import DEFAULT_DURATION_WEEKS, MAX_DURATION_WEEKS, MIN_DURATION_WEEKS


def first_error_message(exc: ValidationError) -> str:
    """Human-readable message for the first validation failure."""
    error = exc.errors()[0]
    if error["type"] == "value_error" and "error" in error.get("ctx", {}):
        return str(error["ctx"]["error"])
    field = ".".join(str(part) for part in error.get("loc", ()))
    return f"{field}: {error['msg']}" if field else error["msg"]


def _blank_to_none(v):
    if isinstance(v, str) and v.strip() == "":
        return None
    return v


def _required_text(v, message: str) -> str:
    if v is None or (isinstance(v, str) and v.strip() == ""):
        raise ValueError(message)
    return v.strip() if isinstance(v, str) else v


def _check_uuid(v):
    if v is None:
        return v
    try:
        uuid.UUID(str(v))
    except ValueError:
        raise ValueError("Invalid identifier")
    return str(v)


class CohortInput(BaseModel):
    model_config = {"validate_default": True}

    name: str | None = None
    start_date: date | None = None
    duration_weeks: int = Field(DEFAULT_DURATION_WEEKS, ge=MIN_DURATION_WEEKS, le=MAX_DURATION_WEEKS)
    meal_program_id: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def name_required(cls, v):
        return _required_text(v, "Name is required")

    @field_validator("start_date", mode="before")
    @classmethod
    def start_date_required(cls, v):
        return _required_text(v, "Start date is required")

    @field_validator("duration_weeks", mode="before")
    @classmethod
    def default_duration(cls, v):
        if v is None or (isinstance(v, str) and v.strip() == ""):
            return DEFAULT_DURATION_WEEKS
        return v

    @field_validator("meal_program_id", mode="before")
    @classmethod
    def optional_program(cls, v):
        return _check_uuid(_blank_to_none(v))


class MealProgramInput(BaseModel):
    model_config = {"validate_default": True}

    name: str | None = None
    description: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def name_required(cls, v):
        return _required_text(v, "Name is required")

    @field_validator("description", mode="before")
    @classmethod
    def optional_description(cls, v):
        return _blank_to_none(v)


class DuplicateProgramInput(BaseModel):
    model_config = {"validate_default": True}

    new_name: str | None = None

    @field_validator("new_name", mode="before")
    @classmethod
    def name_required(cls, v):
        return _required_text(v, "Name is required")


class MealOptionInput(BaseModel):
    model_config = {"validate_default": True}

    option_a_name: str | None = None
    option_a_description: str | None = None
    option_a_image_url: str | None = None
    option_b_name: str | None = None
    option_b_description: str | None = None
    option_b_image_url: str | None = None

    @field_validator("option_a_name", mode="before")
    @classmethod
    def option_a_required(cls, v):
        return _required_text(v, "Option A name is required")

    @field_validator("option_b_name", mode="before")
    @classmethod
    def option_b_required(cls, v):
        return _required_text(v, "Option B name is required")

    @field_validator(
        "option_a_description", "option_a_image_url",
        "option_b_description", "option_b_image_url",
        mode="before",
    )
    @classmethod
    def optional_text(cls, v):
        return _blank_to_none(v)


class MealOptionCreate(MealOptionInput):
    meal_program_id: str
    challenge_week: int = Field(..., ge=1, le=MAX_DURATION_WEEKS)
    challenge_day: int = Field(..., ge=1, le=7)
    meal_type: MealType
    day_of_week: int | None = Field(None, ge=0, le=7)
    week_start_date: date | None = None

    @field_validator("day_of_week", "week_start_date", mode="before")
    @classmethod
    def optional_legacy(cls, v):
        return _blank_to_none(v)


class ParticipantCreate(BaseModel):
    email: EmailStr
    full_name: str | None = None
    cohort_id: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("full_name", mode="before")
    @classmethod
    def optional_name(cls, v):
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("cohort_id", mode="before")
    @classmethod
    def optional_cohort(cls, v):
        return _check_uuid(_blank_to_none(v))


class ParticipantUpdate(BaseModel):
    full_name: str | None = None
    cohort_id: str | None = None

    @field_validator("full_name", mode="before")
    @classmethod
    def optional_name(cls, v):
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("cohort_id", mode="before")
    @classmethod
    def optional_cohort(cls, v):
        return _check_uuid(_blank_to_none(v))


class LoginInput(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
