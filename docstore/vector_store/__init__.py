"""
Document store on top of a Chroma collection.
"""

from docstore.vector_store.base import CollectionInfo, Document, QueryMatch
from docstore.vector_store.chroma_store import DocumentStore, chroma_client_factory

__all__ = ["DocumentStore", "Document", "QueryMatch", "CollectionInfo", "chroma_client_factory"]
