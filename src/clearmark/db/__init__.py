"""Persistence of search jobs."""

from .repository import JobRepository

__all__ = ["JobRepository"]
