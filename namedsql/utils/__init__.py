"""Utility functions and classes for namedsql."""

from namedsql.utils import logging

__all__ = ("logging",)
