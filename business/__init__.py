"""Business rules: date parsing, scheduling, notification selection, views."""
