"""Tests for session schemas."""

from datetime import datetime, timedelta

import pytest
from pydantic import TypeAdapter, ValidationError

from conftest import NOW
from planner.core.states import SessionType
from planner.schemas.sessions import (
    BreakCategory,
    CourseCategory,
    CustomCategory,
    PomodoroSettingsInput,
    SessionCategory,
    SessionDetailsUpdate,
    SessionDraft,
    StudySession,
)


def draft(category, **kwargs) -> SessionDraft:
    return SessionDraft(
        category=category,
        start_time=NOW,
        end_time=NOW + timedelta(minutes=50),
        **kwargs,
    )


class TestSessionDraft:
    def test_course_category_fills_course_fields(self):
        fields = draft(CourseCategory(course_id=3, topic_id=11)).to_fields()

        assert fields["course_id"] == 3
        assert fields["topic_id"] == 11
        assert fields["title"] == "Course study"
        assert fields["duration"] == 50
        assert fields["session_type"] == SessionType.STUDY

    def test_break_category_forces_break_type(self):
        fields = draft(BreakCategory(), session_type="pomodoro").to_fields()

        assert fields["session_type"] == SessionType.BREAK
        assert fields["title"] == "Break"
        assert fields["pomodoro_settings"] is None

    def test_custom_category_uses_its_title(self):
        fields = draft(CustomCategory(title="Lab report")).to_fields()
        assert fields["title"] == "Lab report"
        assert fields["course_id"] is None

    def test_explicit_title_wins(self):
        fields = draft(CourseCategory(course_id=3), title="Chapter 4").to_fields()
        assert fields["title"] == "Chapter 4"

    def test_pomodoro_gets_default_settings(self):
        fields = draft(CustomCategory(title="Reading"), session_type="pomodoro").to_fields()

        settings = fields["pomodoro_settings"]
        assert (settings.work_duration, settings.short_break, settings.long_break) == (25, 5, 15)
        assert settings.cycles_before_long_break == 4

    def test_pomodoro_settings_ranges(self):
        with pytest.raises(ValidationError):
            PomodoroSettingsInput(work_duration=121)
        with pytest.raises(ValidationError):
            PomodoroSettingsInput(cycles_before_long_break=0)

    def test_category_is_discriminated_by_kind(self):
        adapter = TypeAdapter(SessionCategory)

        assert isinstance(adapter.validate_python({"kind": "break"}), BreakCategory)
        assert isinstance(adapter.validate_python({"kind": "course", "course_id": 1}), CourseCategory)
        with pytest.raises(ValidationError):
            adapter.validate_python({"kind": "holiday"})

    def test_invalid_color_rejected(self):
        with pytest.raises(ValidationError):
            draft(BreakCategory(), color="blue")


class TestStudySession:
    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError):
            StudySession(
                id=1, user_id=1, title="x", start_time=NOW, end_time=NOW, duration=1,
            )

    def test_naive_datetimes_are_treated_as_utc(self):
        session = StudySession(
            id=1,
            user_id=1,
            title="x",
            start_time=datetime(2026, 3, 2, 10, 0),
            end_time=datetime(2026, 3, 2, 11, 0),
            duration=60,
        )
        assert session.start_time == NOW

    def test_productivity_range(self):
        with pytest.raises(ValidationError):
            StudySession(
                id=1, user_id=1, title="x", start_time=NOW,
                end_time=NOW + timedelta(hours=1), duration=60, productivity=6,
            )


class TestSessionDetailsUpdate:
    def test_explicit_null_title_is_rejected(self):
        with pytest.raises(ValidationError):
            SessionDetailsUpdate(title=None)

    def test_omitted_title_is_left_unset(self):
        changes = SessionDetailsUpdate(color="#10B981")
        assert "title" not in changes.model_dump(exclude_unset=True)
