"""Session lifecycle and Pomodoro phase engines."""
