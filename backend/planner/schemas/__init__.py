"""Pydantic schemas for study session data."""

from planner.schemas.sessions import (
    BreakCategory,
    CourseCategory,
    CustomCategory,
    PomodoroSettings,
    PomodoroSettingsInput,
    PomodoroSettingsPatch,
    SessionDetailsUpdate,
    SessionDraft,
    StatusMetadata,
    StudySession,
)

__all__ = [
    # Sessions
    "StudySession",
    "SessionDraft",
    "SessionDetailsUpdate",
    "StatusMetadata",
    # Categories
    "CourseCategory",
    "BreakCategory",
    "CustomCategory",
    # Pomodoro
    "PomodoroSettings",
    "PomodoroSettingsInput",
    "PomodoroSettingsPatch",
]
