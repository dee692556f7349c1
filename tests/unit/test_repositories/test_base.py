"""
Unit tests for BaseRepository.

Tests CRUD operations, insert-once semantics, compare-and-swap updates and
error wrapping.
"""

from typing import Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from pydantic import BaseModel

from atlas.api.errors import DatabaseError
from atlas.repositories.base import BaseRepository, is_unique_violation
from tests.fixtures.mocks.databases import MockAPIError


# Mock model for testing
class MockModel(BaseModel):
    """Mock Pydantic model for testing."""

    id: Optional[str] = None
    name: str = "test"
    value: int = 0
    version: int = 0


class ConcreteRepo(BaseRepository[MockModel]):
    table_name = "test_table"
    model_class = MockModel


def result_with(rows):
    mock_result = MagicMock()
    mock_result.data = rows
    return AsyncMock(return_value=mock_result)


@pytest.mark.unit
class TestBaseRepository:
    """Tests for BaseRepository base class."""

    @pytest.fixture
    def mock_client(self):
        """Create a mock Supabase client."""
        return MagicMock()

    @pytest.fixture
    def repo(self, mock_client):
        """Create repository with mock client."""
        return ConcreteRepo(supabase_client=mock_client)

    @pytest.fixture
    def sample_data(self):
        """Sample database record."""
        return {"id": str(uuid4()), "name": "test_record", "value": 42, "version": 3}


@pytest.mark.unit
class TestGetById(TestBaseRepository):
    """Tests for get_by_id method."""

    @pytest.mark.asyncio
    async def test_returns_model_when_found(self, repo, mock_client, sample_data):
        """Test that model is returned when record exists."""
        mock_client.table.return_value.select.return_value.eq.return_value.limit.return_value.execute = result_with(
            [sample_data]
        )

        result = await repo.get_by_id(sample_data["id"])

        assert result is not None
        assert result.id == sample_data["id"]
        assert result.value == 42
        mock_client.table.assert_called_with("test_table")

    @pytest.mark.asyncio
    async def test_returns_none_when_not_found(self, repo, mock_client):
        """Test that None is returned when record doesn't exist."""
        mock_client.table.return_value.select.return_value.eq.return_value.limit.return_value.execute = result_with(
            []
        )

        assert await repo.get_by_id("nonexistent-id") is None

    @pytest.mark.asyncio
    async def test_returns_none_without_client(self):
        """Test that None is returned when no client is configured."""
        assert await ConcreteRepo(supabase_client=None).get_by_id("any") is None


@pytest.mark.unit
class TestGetMany(TestBaseRepository):
    """Tests for get_many method."""

    @pytest.mark.asyncio
    async def test_applies_filters_order_and_limit(self, repo, mock_client, sample_data):
        """Test filters, ordering and limit are applied to the query."""
        query = MagicMock()
        query.eq.return_value = query
        query.order.return_value = query
        query.limit.return_value = query
        query.execute = result_with([sample_data])
        mock_client.table.return_value.select.return_value = query

        result = await repo.get_many({"name": "test_record"}, limit=5, order_by="created_at")

        assert len(result) == 1
        query.eq.assert_called_once_with("name", "test_record")
        query.order.assert_called_once_with("created_at", desc=True)
        query.limit.assert_called_once_with(5)

    @pytest.mark.asyncio
    async def test_returns_empty_list_without_client(self):
        """Test that an empty list is returned with no client."""
        assert await ConcreteRepo(supabase_client=None).get_many({}) == []


@pytest.mark.unit
class TestCreate(TestBaseRepository):
    """Tests for create and create_once."""

    @pytest.mark.asyncio
    async def test_create_inserts_without_null_fields(self, repo, mock_client, sample_data):
        """Test create drops unset fields so server defaults apply."""
        mock_client.table.return_value.insert.return_value.execute = result_with([sample_data])

        result = await repo.create(MockModel(name="test_record", value=42))

        assert result.id == sample_data["id"]
        payload = mock_client.table.return_value.insert.call_args[0][0]
        assert "id" not in payload
        assert payload["name"] == "test_record"

    @pytest.mark.asyncio
    async def test_create_once_ignores_duplicates(self, repo, mock_client):
        """Test create_once upserts with ignore_duplicates and reports a duplicate as None."""
        mock_client.table.return_value.upsert.return_value.execute = result_with([])

        result = await repo.create_once(MockModel(id="fixed", name="x"))

        assert result is None
        kwargs = mock_client.table.return_value.upsert.call_args.kwargs
        assert kwargs == {"on_conflict": "id", "ignore_duplicates": True}

    @pytest.mark.asyncio
    async def test_create_returns_entity_without_client(self):
        """Test create echoes the entity with no client."""
        entity = MockModel(name="offline")

        assert await ConcreteRepo(supabase_client=None).create(entity) is entity


@pytest.mark.unit
class TestCompareAndSwap(TestBaseRepository):
    """Tests for compare_and_swap."""

    @pytest.mark.asyncio
    async def test_bumps_version_and_filters_on_expected(self, repo, mock_client, sample_data):
        """Test the update is conditioned on the expected version."""
        first_eq = MagicMock()
        second_eq = MagicMock()
        second_eq.execute = result_with([{**sample_data, "version": 4}])
        first_eq.eq.return_value = second_eq
        mock_client.table.return_value.update.return_value.eq.return_value = first_eq

        result = await repo.compare_and_swap(sample_data["id"], 3, {"value": 43})

        assert result.version == 4
        payload = mock_client.table.return_value.update.call_args[0][0]
        assert payload == {"value": 43, "version": 4}
        first_eq.eq.assert_called_once_with("version", 3)

    @pytest.mark.asyncio
    async def test_lost_race_returns_none(self, repo, mock_client):
        """Test no matching row means another writer won."""
        mock_client.table.return_value.update.return_value.eq.return_value.eq.return_value.execute = result_with(
            []
        )

        assert await repo.compare_and_swap("id", 3, {"value": 1}) is None


@pytest.mark.unit
class TestErrorHandling(TestBaseRepository):
    """Tests for store failure wrapping."""

    @pytest.mark.asyncio
    async def test_failures_become_database_errors(self, repo, mock_client):
        """Test a client exception is re-raised as DatabaseError."""
        failure = MockAPIError("connection refused")
        mock_client.table.return_value.insert.return_value.execute = AsyncMock(side_effect=failure)

        with pytest.raises(DatabaseError) as exc_info:
            await repo.create(MockModel())

        error = exc_info.value
        assert error.details["table"] == "test_table"
        assert error.details["operation"] == "create"
        assert error.original_error is failure

    def test_unique_violation_detection(self):
        """Test unique violations are recognized directly and when wrapped."""
        raw = MockAPIError("duplicate key", code="23505")
        wrapped = DatabaseError("create", table="t", original_error=raw)

        assert is_unique_violation(raw)
        assert is_unique_violation(wrapped)
        assert not is_unique_violation(MockAPIError("other", code="42P01"))
        assert not is_unique_violation(ValueError("x"))
