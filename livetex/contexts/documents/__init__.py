"""
Documents Context

Responsibilities:
- Stores document bodies keyed by document identifier
- Assigns identifiers and timestamps on save

Owns: the documents JSON file
Never: Blocks compilation (the session treats saves as best-effort)
"""

from livetex.contexts.documents.store import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    PersistenceFailure,
    default_document,
)

__all__ = [
    "Document",
    "DocumentNotFoundError",
    "DocumentStore",
    "PersistenceFailure",
    "default_document",
]
