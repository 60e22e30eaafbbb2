"""Shared types and errors."""
