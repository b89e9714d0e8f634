"""Study session schemas."""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import Field, field_validator, model_validator

from planner.core.states import SessionStatus, SessionType
from planner.schemas.base import BaseSchema, ensure_aware_utc

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
DEFAULT_COLOR = "#3B82F6"
MAX_DURATION_MINUTES = 24 * 60


def duration_minutes(start_time: datetime, end_time: datetime) -> int:
    """Length of a time range in whole minutes, rounded."""
    return round((end_time - start_time).total_seconds() / 60)


# =============================================================================
# POMODORO SETTINGS
# =============================================================================


class PomodoroSettings(BaseSchema):
    """
    Pomodoro settings as persisted on a session.

    Deliberately lenient: stored records may carry missing or zero values.
    The Pomodoro engine resolves them into a strict PomodoroConfig.
    """

    work_duration: int | None = None
    short_break: int | None = None
    long_break: int | None = None
    cycles_before_long_break: int | None = None
    current_cycle: int = 0


class PomodoroSettingsInput(BaseSchema):
    """Pomodoro settings supplied when scheduling a session."""

    work_duration: int = Field(25, ge=1, le=120)
    short_break: int = Field(5, ge=1, le=30)
    long_break: int = Field(15, ge=1, le=60)
    cycles_before_long_break: int = Field(4, ge=1, le=10)
    current_cycle: int = Field(0, ge=0)


class PomodoroSettingsPatch(BaseSchema):
    """Partial Pomodoro settings update, merged over the stored values."""

    work_duration: int | None = Field(None, ge=1, le=120)
    short_break: int | None = Field(None, ge=1, le=30)
    long_break: int | None = Field(None, ge=1, le=60)
    cycles_before_long_break: int | None = Field(None, ge=1, le=10)
    current_cycle: int | None = Field(None, ge=0)


# =============================================================================
# STUDY SESSION
# =============================================================================


class StudySession(BaseSchema):
    """Schema for reading a study session."""

    id: int
    user_id: int
    plan_id: int | None = None
    course_id: int | None = None
    topic_id: int | None = None
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    start_time: datetime
    end_time: datetime
    duration: int
    status: SessionStatus = SessionStatus.PLANNED
    session_type: SessionType = SessionType.STUDY
    color: str | None = DEFAULT_COLOR
    pomodoro_settings: PomodoroSettings | None = None
    notes: str | None = None
    productivity: int | None = Field(None, ge=1, le=5)
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("start_time", "end_time", "completed_at", "created_at", "updated_at")
    @classmethod
    def make_aware(cls, value: datetime | None) -> datetime | None:
        return ensure_aware_utc(value)

    @model_validator(mode="after")
    def validate_time_range(self) -> "StudySession":
        """Ensure end_time > start_time."""
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


# =============================================================================
# SCHEDULING INPUT
# =============================================================================


class CourseCategory(BaseSchema):
    """Study block for a course, optionally narrowed to one topic."""

    kind: Literal["course"] = "course"
    course_id: int
    topic_id: int | None = None


class BreakCategory(BaseSchema):
    """Rest block. Always stored with session_type=break."""

    kind: Literal["break"] = "break"


class CustomCategory(BaseSchema):
    """Free-form task with its own title."""

    kind: Literal["custom"] = "custom"
    title: str = Field(..., min_length=1, max_length=200)


SessionCategory = Annotated[
    Union[CourseCategory, BreakCategory, CustomCategory],
    Field(discriminator="kind"),
]

CATEGORY_DEFAULT_TITLES = {
    "course": "Course study",
    "break": "Break",
}


class SessionDraft(BaseSchema):
    """Schema for placing a new session on the calendar."""

    category: SessionCategory
    start_time: datetime
    end_time: datetime
    session_type: Literal["study", "pomodoro", "review"] = "study"
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    color: str | None = Field(None, pattern=HEX_COLOR_PATTERN)
    plan_id: int | None = None
    pomodoro_settings: PomodoroSettingsInput | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def make_aware(cls, value: datetime) -> datetime:
        return ensure_aware_utc(value)

    def to_fields(self) -> dict:
        """Flatten the category variant into StudySession columns."""
        category = self.category
        fields = {
            "plan_id": self.plan_id,
            "course_id": None,
            "topic_id": None,
            "description": self.description,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": duration_minutes(self.start_time, self.end_time),
            "session_type": SessionType(self.session_type),
            "color": self.color or DEFAULT_COLOR,
            "pomodoro_settings": None,
        }

        if isinstance(category, CourseCategory):
            fields["course_id"] = category.course_id
            fields["topic_id"] = category.topic_id
            fields["title"] = self.title or CATEGORY_DEFAULT_TITLES["course"]
        elif isinstance(category, BreakCategory):
            fields["session_type"] = SessionType.BREAK
            fields["title"] = self.title or CATEGORY_DEFAULT_TITLES["break"]
        else:
            fields["title"] = self.title or category.title

        if fields["session_type"] == SessionType.POMODORO:
            settings = self.pomodoro_settings or PomodoroSettingsInput()
            fields["pomodoro_settings"] = PomodoroSettings(**settings.model_dump())
        return fields


class SessionDetailsUpdate(BaseSchema):
    """Schema for editing non-schedule fields. All fields optional."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    color: str | None = Field(None, pattern=HEX_COLOR_PATTERN)
    notes: str | None = None
    pomodoro_settings: PomodoroSettingsPatch | None = None

    @field_validator("title")
    @classmethod
    def title_not_null(cls, value: str | None) -> str | None:
        """An omitted title is kept as is; an explicit null is refused."""
        if value is None:
            raise ValueError("title cannot be null")
        return value


class StatusMetadata(BaseSchema):
    """Extra values written together with a status change."""

    notes: str | None = None
    productivity: int | None = Field(None, ge=1, le=5)
    current_cycle: int | None = Field(None, ge=0)
    clear_completion: bool = False
