"""
Document storage provider interface.

Collections are addressed by name and documents by a string ``_id``.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class DataStorageProvider(ABC):
    """Interface for document storage providers."""

    @abstractmethod
    def create_collection(self, name: str) -> None:
        """Create a collection unless it already exists."""
        pass

    @abstractmethod
    def replace_one(self, collection: str, query: Dict, document: Dict, upsert: bool = True) -> bool:
        """Replace a whole document, inserting it when missing."""
        pass

    @abstractmethod
    def find_one(self, collection: str, query: Dict) -> Optional[Dict]:
        """Return the first matching document or None."""
        pass

    @abstractmethod
    def find(
        self, collection: str, query: Dict, sort: Optional[List] = None, limit: int = 0, skip: int = 0
    ) -> List[Dict]:
        """Return matching documents, sorted by (field, direction) pairs when given."""
        pass

    @abstractmethod
    def update_one(self, collection: str, query: Dict, update: Dict, upsert: bool = False) -> bool:
        """Apply an update operator document. Returns True when a document matched."""
        pass

    @abstractmethod
    def update_many(self, collection: str, query: Dict, update: Dict) -> int:
        """Update all documents matching query as one batch. Returns the matched count."""
        pass

    @abstractmethod
    def delete_many(self, collection: str, query: Dict) -> int:
        """Delete all documents matching query and return how many were removed."""
        pass

    @abstractmethod
    def create_index(self, collection: str, keys: List, **kwargs) -> None:
        """Create an index over (field, direction) pairs."""
        pass
