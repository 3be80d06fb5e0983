"""
Worker module.
Contains the registry of named transforms jobs can run.
"""

from batcher.worker.transforms import get_transform, list_transforms, register_transform

__all__ = ["register_transform", "get_transform", "list_transforms"]
