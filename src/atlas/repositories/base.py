"""
Base repository implementation for the orchestration store.

Every query goes through ``_execute`` so a store failure surfaces as a typed
``DatabaseError`` naming the table and operation, never as a raw client
exception.
"""

import logging
from abc import ABC
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from atlas.api.errors import DatabaseError

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: BaseException) -> bool:
    """True when a PostgREST error reports a unique constraint conflict."""
    original = getattr(exc, "original_error", None) or exc
    return str(getattr(original, "code", "")) == UNIQUE_VIOLATION


class BaseRepository(ABC, Generic[T]):
    """
    Base repository with common CRUD operations.

    All subclasses must define:
    - table_name: The Supabase table name
    - model_class: The Pydantic model class
    """

    table_name: str
    model_class: Type[T]

    def __init__(self, supabase_client=None):
        """
        Initialize repository with Supabase client.

        Args:
            supabase_client: Async Supabase client instance
        """
        self.client = supabase_client

    async def _execute(self, query, operation: str) -> List[Dict[str, Any]]:
        """
        Run a built query and return its rows.

        Raises:
            DatabaseError: If the store rejects or fails the query
        """
        try:
            result = await query.execute()
        except Exception as e:
            logger.error(f"{self.table_name}.{operation} failed: {e}")
            raise DatabaseError(operation, table=self.table_name, original_error=e) from e
        return result.data or []

    async def get_by_id(self, id: str) -> Optional[T]:
        """
        Get a single record by ID.

        Args:
            id: Record UUID

        Returns:
            Model instance or None
        """
        if not self.client:
            return None

        query = self.client.table(self.table_name).select("*").eq("id", id).limit(1)
        rows = await self._execute(query, "get_by_id")
        return self._to_model(rows[0]) if rows else None

    async def get_many(
        self,
        filters: Dict[str, Any],
        limit: int = 100,
        order_by: Optional[str] = None,
        descending: bool = True,
    ) -> List[T]:
        """
        Get multiple records with equality filters.

        Args:
            filters: Column-value filters
            limit: Maximum records to return
            order_by: Optional column to sort by
            descending: Sort direction when order_by is set

        Returns:
            List of model instances
        """
        if not self.client:
            return []

        query = self.client.table(self.table_name).select("*")

        for column, value in filters.items():
            query = query.eq(column, value)

        if order_by:
            query = query.order(order_by, desc=descending)

        rows = await self._execute(query.limit(limit), "get_many")
        return [self._to_model(row) for row in rows]

    async def create(self, entity: T) -> T:
        """
        Create a new record.

        Args:
            entity: Model instance to create

        Returns:
            Created model instance with ID
        """
        if not self.client:
            return entity

        query = self.client.table(self.table_name).insert(self._to_row(entity))
        rows = await self._execute(query, "create")
        return self._to_model(rows[0]) if rows else entity

    async def create_once(self, entity: T, on_conflict: str = "id") -> Optional[T]:
        """
        Insert a record unless one with the same key already exists.

        Returns:
            The created model, or None when the key was already present
        """
        if not self.client:
            return entity

        query = self.client.table(self.table_name).upsert(
            self._to_row(entity), on_conflict=on_conflict, ignore_duplicates=True
        )
        rows = await self._execute(query, "create_once")
        return self._to_model(rows[0]) if rows else None

    async def update(self, id: str, updates: Dict[str, Any]) -> Optional[T]:
        """
        Update an existing record.

        Args:
            id: Record UUID
            updates: Column-value updates

        Returns:
            Updated model instance or None
        """
        if not self.client:
            return None

        query = self.client.table(self.table_name).update(updates).eq("id", id)
        rows = await self._execute(query, "update")
        return self._to_model(rows[0]) if rows else None

    async def compare_and_swap(
        self, id: str, expected_version: int, updates: Dict[str, Any]
    ) -> Optional[T]:
        """
        Apply updates only if the row still carries ``expected_version``.

        Returns:
            Updated model, or None when another writer got there first
        """
        if not self.client:
            return None

        payload = {**updates, "version": expected_version + 1}
        query = (
            self.client.table(self.table_name)
            .update(payload)
            .eq("id", id)
            .eq("version", expected_version)
        )
        rows = await self._execute(query, "compare_and_swap")
        return self._to_model(rows[0]) if rows else None

    def _to_row(self, entity: Any) -> Dict[str, Any]:
        """Serialize a model for insertion, leaving out unset server defaults."""
        if hasattr(entity, "model_dump"):
            return entity.model_dump(mode="json", exclude_none=True)
        return entity

    def _to_model(self, data: Dict[str, Any]) -> T:
        """Convert database row to model instance."""
        if self.model_class and hasattr(self.model_class, "model_validate"):
            return self.model_class.model_validate(data)
        return data
