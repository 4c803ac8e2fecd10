"""SQLite persistence for annotations."""

from readgrid.storage.annotation_repository import AnnotationRepository

__all__ = ["AnnotationRepository"]
