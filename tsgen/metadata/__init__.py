"""Type metadata providers."""

from .base import AnnotationView, MetadataProvider
from .memory import InMemoryMetadataProvider, TypeBuilder, TypeGraphBuilder
from .reflection import ReflectionMetadataProvider
from .schema import SchemaMetadataProvider

__all__ = [
    "AnnotationView",
    "InMemoryMetadataProvider",
    "MetadataProvider",
    "ReflectionMetadataProvider",
    "SchemaMetadataProvider",
    "TypeBuilder",
    "TypeGraphBuilder",
]
