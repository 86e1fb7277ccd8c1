"""Data models for mail-index.

This module contains Pydantic models for data validation and serialization.
"""

from .email_record import EmailRecord

__all__ = ["EmailRecord"]
