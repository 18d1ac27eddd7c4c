"""
MongoDB adapter for the Tracura budget system.

This adapter implements the DataStorageProvider interface on top of pymongo.
Documents are keyed by string ``_id`` values; nested map fields such as a
phase's ``departments`` are addressed with dotted paths in updates.
"""
from typing import Dict, List, Optional, Tuple

from pymongo import MongoClient
from pymongo.collection import Collection

from tracura_budget.interfaces.providers.data_storage import DataStorageProvider


class MongoDBAdapter(DataStorageProvider):
    """MongoDB implementation of DataStorageProvider."""

    def __init__(self, connection_string: str, database_name: str, use_transactions: bool = True):
        """Connect to a database.

        Args:
            connection_string: MongoDB URI
            database_name: Database holding the budget collections
            use_transactions: Run batch updates in a transaction. Needs a replica set
                or sharded cluster; pass False for a standalone server.
        """
        self.client = MongoClient(connection_string)
        self.db = self.client[database_name]
        self.use_transactions = use_transactions

    def _collection(self, name: str) -> Collection:
        return self.db[name]

    def create_collection(self, name: str) -> None:
        if name not in self.db.list_collection_names():
            self.db.create_collection(name)

    def replace_one(self, collection: str, query: Dict, document: Dict, upsert: bool = True) -> bool:
        result = self._collection(collection).replace_one(query, document, upsert=upsert)
        return result.matched_count > 0 or result.upserted_id is not None

    def find_one(self, collection: str, query: Dict) -> Optional[Dict]:
        return self._collection(collection).find_one(query)

    def find(
        self,
        collection: str,
        query: Dict,
        sort: Optional[List[Tuple]] = None,
        limit: int = 0,
        skip: int = 0
    ) -> List[Dict]:
        """Find documents, optionally sorted and paged.

        A limit of 0 returns every remaining document.
        """
        cursor = self._collection(collection).find(query)
        if sort:
            cursor = cursor.sort(sort)
        return list(cursor.skip(skip).limit(limit))

    def update_one(self, collection: str, query: Dict, update: Dict, upsert: bool = False) -> bool:
        result = self._collection(collection).update_one(query, update, upsert=upsert)
        if result.matched_count:
            return True
        return upsert and result.upserted_id is not None

    def update_many(self, collection: str, query: Dict, update: Dict) -> int:
        """Apply one update to every matching document.

        With transactions enabled the batch commits or aborts as a whole.

        Returns:
            Number of documents matched
        """
        if not self.use_transactions:
            return self._collection(collection).update_many(query, update).matched_count
        with self.client.start_session() as session:
            with session.start_transaction():
                result = self._collection(collection).update_many(query, update, session=session)
        return result.matched_count

    def delete_many(self, collection: str, query: Dict) -> int:
        return self._collection(collection).delete_many(query).deleted_count

    def create_index(self, collection: str, keys: List[Tuple], **kwargs) -> None:
        self._collection(collection).create_index(keys, **kwargs)
