"""Prompts and response schemas for model tasks."""
