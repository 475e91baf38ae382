"""Reference tree resolution and preparation."""

from provcheck.reference.tree import DirectoryReferenceTree, MappingReferenceTree, ReferenceResolver

__all__ = ["DirectoryReferenceTree", "MappingReferenceTree", "ReferenceResolver"]
