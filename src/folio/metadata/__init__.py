# ABOUTME: Metadata package holding the immutable EPUB package data model.
# ABOUTME: Exports metadata, manifest, spine, and navigation types used throughout Folio.

from folio.metadata.types import BookMetadata, ManifestEntry, NavigationNode, SpineItem

__all__ = [
    "BookMetadata",
    "ManifestEntry",
    "NavigationNode",
    "SpineItem",
]
