"""Data models for trip preferences, stage outputs, tool calls and jobs."""
