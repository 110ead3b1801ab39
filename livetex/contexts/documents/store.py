"""
Document Store

Key-value store of LaTeX documents backed by a single JSON file.

Schema (one object per document, stored as a JSON list):
    id (str): Unique identifier, assigned on first save (PRIMARY KEY)
    title (str): Display title
    content (str): Document body
    created_at (str): ISO 8601 timestamp of first save
    updated_at (str): ISO 8601 timestamp of last save

Usage:
    from livetex.contexts.documents.store import DocumentStore

    store = DocumentStore(Path("outs/documents.json"))
    doc = store.save_document(content=r"\\documentclass{article}...", title="Notes")
    store.save_document(content=updated, title="Notes", doc_id=doc.id)
"""

import json
import os
import tempfile
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, List, Optional

from livetex.contexts.documents.logger import _log_debug, _log_info, _log_warning
from livetex.utils.timestamp import now, now_exact


class DocumentNotFoundError(KeyError):
    """Raised when a document id is not in the store."""


class PersistenceFailure(OSError):
    """Raised when the store file cannot be written."""


@dataclass
class Document:
    id: str
    title: str
    content: str
    created_at: str
    updated_at: str


DEFAULT_TITLE = "Untitled Document"

DEFAULT_CONTENT = r"""% Default LaTeX template with common packages and theorem environments
\documentclass{article}

% Essential packages
\usepackage{amsmath}
\usepackage{amssymb}
\usepackage{amsthm}
\usepackage{mathtools}
\usepackage{url}
\usepackage{xcolor}
\usepackage{enumitem}

% Theorem environments
\theoremstyle{plain}
\newtheorem{theorem}{Theorem}[section]
\newtheorem{proposition}[theorem]{Proposition}
\newtheorem{lemma}[theorem]{Lemma}
\newtheorem{corollary}[theorem]{Corollary}

\theoremstyle{definition}
\newtheorem{definition}[theorem]{Definition}

\theoremstyle{remark}
\newtheorem{remark}[theorem]{Remark}

\title{My Document}
\author{Your Name}
\date{\today}

\begin{document}
\maketitle

\section{Introduction}
Hello, \LaTeX! This is a sample document with common mathematical environments pre-configured.

\begin{theorem}[Pythagorean Theorem]
In a right triangle, the square of the hypotenuse is equal to the sum of the squares of the other two sides:
\begin{equation*}
a^2 + b^2 = c^2
\end{equation*}
\end{theorem}

\begin{proof}
The proof is left as an exercise for the reader.
\end{proof}

\end{document}
"""


def default_document() -> Dict[str, str]:
    """Title and content new documents start from."""
    return {"title": DEFAULT_TITLE, "content": DEFAULT_CONTENT}


class DocumentStore:
    """
    JSON-file document store.

    Reads tolerate a missing or corrupt file (treated as empty). A corrupt file
    is first moved to a .corrupt-<timestamp> backup beside it, so documents it
    held are never overwritten by the next save. Writes go to a temporary file
    in the same directory and replace the store atomically.

    Args:
        path: JSON file holding the documents
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def list_documents(self) -> List[Document]:
        """All documents, most recently updated first."""
        documents = self._read()
        return sorted(documents, key=lambda doc: doc.updated_at, reverse=True)

    def get_document(self, doc_id: str) -> Optional[Document]:
        for doc in self._read():
            if doc.id == doc_id:
                return doc
        return None

    def save_document(
        self,
        content: str,
        title: Optional[str] = None,
        doc_id: Optional[str] = None,
    ) -> Document:
        """
        Create or update a document.

        Args:
            content: Document body
            title: Display title (default: keep existing, or DEFAULT_TITLE for new documents)
            doc_id: Existing document id; None creates a new document

        Returns:
            The saved Document

        Raises:
            DocumentNotFoundError: If doc_id is given but not in the store
            PersistenceFailure: If the store file cannot be written
        """
        documents = self._read()
        timestamp = now_exact()

        if doc_id is None:
            doc = Document(
                id=f"doc_{uuid.uuid4().hex[:12]}",
                title=title or DEFAULT_TITLE,
                content=content,
                created_at=timestamp,
                updated_at=timestamp,
            )
            documents.append(doc)
            _log_info(f"Created document {doc.id}")
        else:
            doc = next((d for d in documents if d.id == doc_id), None)
            if doc is None:
                raise DocumentNotFoundError(doc_id)
            doc.content = content
            if title is not None:
                doc.title = title
            doc.updated_at = timestamp
            _log_debug(f"Updated document {doc.id} ({len(content)} chars)")

        self._write(documents)
        return doc

    def delete_document(self, doc_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""
        documents = self._read()
        remaining = [doc for doc in documents if doc.id != doc_id]
        if len(remaining) == len(documents):
            return False
        self._write(remaining)
        _log_info(f"Deleted document {doc_id}")
        return True

    def _read(self) -> List[Document]:
        if not self.path.exists():
            return []
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            _log_warning(f"Could not read {self.path}, treating store as empty: {e}")
            return []
        try:
            raw = json.loads(text)
        except ValueError as e:
            self._set_aside(f"is not valid JSON ({e})")
            return []
        if not isinstance(raw, list):
            self._set_aside("does not hold a list")
            return []

        documents = []
        for entry in raw:
            try:
                documents.append(Document(**entry))
            except TypeError:
                # Skip malformed entries
                continue
        return documents

    def _set_aside(self, problem: str) -> None:
        """Move an unreadable store file to a .corrupt backup so the next save cannot overwrite it."""
        backup = self.path.with_name(f"{self.path.name}.corrupt-{now()}")
        counter = 1
        while backup.exists():
            backup = self.path.with_name(f"{self.path.name}.corrupt-{now()}-{counter}")
            counter += 1
        try:
            os.replace(self.path, backup)
        except OSError as e:
            raise PersistenceFailure(
                f"{self.path} {problem} and could not be moved aside: {e}"
            ) from e
        _log_warning(f"{self.path} {problem}; moved to {backup}, treating store as empty")

    def _write(self, documents: List[Document]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump([asdict(doc) for doc in documents], f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceFailure(f"Could not write {self.path}: {e}") from e
