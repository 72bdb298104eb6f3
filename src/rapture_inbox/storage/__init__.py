"""
Storage module for the local destination vault.
"""

from .base import LocalStore, StorageExistsError, normalize_path

__all__ = ["LocalStore", "StorageExistsError", "normalize_path"]
