"""Vector storage on chromadb."""

from recollect.vectorstore.store import EmbeddingDimensionError, VectorIndex, collection_name_for

__all__ = ["EmbeddingDimensionError", "VectorIndex", "collection_name_for"]
