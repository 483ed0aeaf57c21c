"""
DatasetRepository SQL composition.

Statements are rendered with Composable.as_string() so identifiers are
checked quoted and values are checked to travel as parameters.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from psycopg.types.json import Jsonb

from config.database_config import DatabaseConfig
from config.defaults import LoadDefaults
from infrastructure.dataset_repository import FEATURE_COLUMNS, DatasetRepository


@pytest.fixture
def data_source():
    source = MagicMock()
    source.query = AsyncMock(return_value=1)
    source.execute_query = AsyncMock(return_value=2)
    return source


@pytest.fixture
def repository(data_source):
    config = DatabaseConfig(
        host="localhost",
        database="testdb",
        content_schema="content",
        dataset_table="dataset",
        delete_function="delete_dataset_content",
        stats_function="recompute_dataset_statistics",
    )
    return DatasetRepository(data_source, config)


class TestStoredOperations:
    def test_delete_calls_function_with_id(self, repository, data_source):
        asyncio.run(repository.delete_dataset("d1"))
        query, params = data_source.query.call_args.args
        assert query.as_string(None) == 'SELECT "content"."delete_dataset_content"(%s)'
        assert params == ["d1"]

    def test_statistics_calls_function_with_id(self, repository, data_source):
        asyncio.run(repository.recompute_statistics("d1"))
        query, params = data_source.query.call_args.args
        assert '"recompute_dataset_statistics"' in query.as_string(None)
        assert params == ["d1"]


class TestInsertFeatures:
    def test_one_statement_per_call(self, repository, data_source):
        conn = object()
        features = [{"id": 1}, {"id": 2}, {"id": 3}]

        asyncio.run(repository.insert_features(conn, "node", "d1", features, "u1"))

        call_conn, query, params = data_source.execute_query.call_args.args
        assert call_conn is conn
        rendered = query.as_string(None)
        assert rendered.startswith('INSERT INTO "content"."node" ("tdei_dataset_id", "feature", "requested_by") VALUES')
        assert rendered.count("(%s, %s, %s)") == 3
        assert params[0::3] == ["d1", "d1", "d1"]
        assert params[2::3] == ["u1", "u1", "u1"]
        assert all(isinstance(p, Jsonb) for p in params[1::3])
        assert [p.obj for p in params[1::3]] == features

    def test_empty_features_issue_no_statement(self, repository, data_source):
        assert asyncio.run(repository.insert_features(object(), "node", "d1", [], "u1")) == 0
        data_source.execute_query.assert_not_called()

    def test_table_name_is_quoted(self, repository, data_source):
        asyncio.run(repository.insert_features(object(), 'node"; DROP TABLE x; --', "d1", [{}], "u1"))
        _, query, _ = data_source.execute_query.call_args.args
        assert '"node""; DROP TABLE x; --"' in query.as_string(None)

    def test_largest_batch_fits_bind_parameter_limit(self, repository, data_source):
        features = [{"id": i} for i in range(LoadDefaults.MAX_BULK_INSERT_BATCH_SIZE)]
        asyncio.run(repository.insert_features(object(), "node", "d1", features, "u1"))
        _, _, params = data_source.execute_query.call_args.args
        assert len(params) == LoadDefaults.MAX_BULK_INSERT_BATCH_SIZE * len(FEATURE_COLUMNS)
        assert len(params) <= 65535


class TestUpdateMetadata:
    def test_updates_kind_column(self, repository, data_source):
        asyncio.run(repository.update_metadata(object(), "d1", "edge_info", {"version": "0.2"}))
        _, query, params = data_source.execute_query.call_args.args
        assert query.as_string(None) == (
            'UPDATE "content"."dataset" SET "edge_info" = %s WHERE tdei_dataset_id = %s'
        )
        assert params[0].obj == {"version": "0.2"}
        assert params[1] == "d1"
