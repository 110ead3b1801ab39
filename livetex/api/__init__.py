"""
HTTP surface for LiveTeX: the compile endpoint, inline preview and document CRUD.
"""

from livetex.api.app import create_app

__all__ = ["create_app"]
