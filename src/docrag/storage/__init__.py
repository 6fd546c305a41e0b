"""Raw file storage."""

from .objects import LocalObjectStore, ObjectStore, S3ObjectStore

__all__ = ["LocalObjectStore", "ObjectStore", "S3ObjectStore"]
