"""
Storage module.
Contains persistence for completed job exports.
"""

from batcher.storage.repository import ExportRepository

__all__ = ["ExportRepository"]
