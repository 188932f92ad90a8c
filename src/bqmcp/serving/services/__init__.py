"""Shared service helpers (error taxonomy)."""
