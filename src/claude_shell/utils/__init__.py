"""Utilities — logging and tracing helpers."""
