"""Backup interval policy."""

from .interval_policy import is_due, next_due, required_interval

__all__ = ["is_due", "next_due", "required_interval"]
