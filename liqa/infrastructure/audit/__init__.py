"""
Activity (audit) logging infrastructure.

This module provides the append-only activity trail admins read from the
dashboard.
"""

from liqa.infrastructure.audit.activity_logger import ActivityLogger

__all__ = ["ActivityLogger"]
