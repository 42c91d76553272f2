"""Data models for image format validation."""
