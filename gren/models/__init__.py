"""Data models for gren."""
