"""Core data model and exceptions."""
