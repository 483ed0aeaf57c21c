"""
LoadOrchestrator end to end over in-memory fakes.

Committed state lives in FakeContentStore, so atomicity and idempotent
reload are asserted on what a reader would actually see.
"""

import asyncio

import pytest

from config.load_config import LoadConfig
from exceptions import ContractViolationError, StorageError
from extract_load.classifier import EntryClassifier
from extract_load.contracts import DataType, GeometryKind, LoadState
from extract_load.inserter import BatchInserter
from extract_load.orchestrator import (
    LoadOrchestrator,
    OswDatasetLoader,
    UnsupportedDatasetLoader,
)
from tests.factories.load_factories import (
    FakeAuthorizer,
    FakeContentStore,
    FakeDataSource,
    FakeRepository,
    FakeStorage,
    RecordingReporter,
    failing_chunks,
    make_collection,
    make_message,
    make_zip,
    patch_central_directory,
)

URL = "https://acct.blob.core.windows.net/osw/d1/dataset.zip"


class Harness:
    """Wires an orchestrator over fakes; attributes are the fakes for assertions."""

    def __init__(self, archive: bytes = b"", batch_size: int = 2, authorizer=None, stream=None, **repo_options):
        self.store = FakeContentStore()
        self.data_source = FakeDataSource(self.store)
        self.repository = FakeRepository(self.store, **repo_options)
        self.storage = FakeStorage({URL: archive}, stream=stream)
        self.reporter = RecordingReporter()
        self.authorizer = authorizer
        load_config = LoadConfig(batch_size=batch_size, max_inflight_entries=2)
        osw_loader = OswDatasetLoader(
            data_source=self.data_source,
            repository=self.repository,
            storage=self.storage,
            inserter=BatchInserter(self.repository, batch_size),
            classifier=EntryClassifier(load_config.data_file_suffix),
            load_config=load_config,
        )
        self.orchestrator = LoadOrchestrator(
            {
                DataType.OSW: osw_loader,
                DataType.FLEX: UnsupportedDatasetLoader(DataType.FLEX),
                DataType.PATHWAYS: UnsupportedDatasetLoader(DataType.PATHWAYS),
            },
            self.reporter,
            authorizer,
        )

    def process(self, message=None):
        return asyncio.run(self.orchestrator.process(message or make_message(file_upload_path=URL)))

    @property
    def outcomes(self):
        return [(success, detail) for _, success, detail in self.reporter.reports]


def _osw_archive():
    return make_zip({
        "d1/": None,
        "d1/nodes.geojson": make_collection(3, prefix="n"),
        "d1/edges.geojson": make_collection(2, prefix="e"),
    })


class TestEndToEnd:
    def test_nodes_and_edges_loaded(self):
        harness = Harness(_osw_archive(), batch_size=2)

        result = harness.process()

        assert result.state == LoadState.DONE
        assert result.success
        assert result.rows_by_kind == {GeometryKind.NODE: 3, GeometryKind.EDGE: 2}
        assert ("delete", "d1") in harness.store.events
        assert harness.store.events[-1] == ("stats", "d1")
        node_rows = harness.store.rows_for("node")
        edge_rows = harness.store.rows_for("edge")
        assert len(node_rows) == 3
        assert len(edge_rows) == 2
        assert {(row[1], row[3]) for row in node_rows + edge_rows} == {("d1", "u1")}
        assert harness.outcomes == [(True, "Data loaded successfully")]

    def test_phase_order(self):
        harness = Harness(_osw_archive())
        harness.process()
        phases = [e[0] for e in harness.store.events if e[0] in ("delete", "begin", "commit", "stats")]
        assert phases == ["delete", "begin", "commit", "stats"]

    def test_feature_order_preserved_within_kind(self):
        harness = Harness(_osw_archive(), batch_size=2)
        harness.process()
        ids = [row[2]["properties"]["_id"] for row in harness.store.rows_for("node")]
        assert ids == ["n0", "n1", "n2"]
        node_batches = [len(features) for table, features in harness.repository.insert_calls if table == "node"]
        assert node_batches == [2, 1]

    def test_unclassified_entries_produce_no_inserts(self):
        archive = make_zip({
            "readme.txt": "hello",
            "metadata.geojson": make_collection(1),
            "nodes.geojson": make_collection(1),
        })
        harness = Harness(archive)
        result = harness.process()
        assert result.success
        assert {table for table, _ in harness.repository.insert_calls} == {"node"}

    def test_all_kinds(self):
        archive = make_zip({
            name: make_collection(1)
            for name in ("nodes.geojson", "edges.geojson", "points.geojson",
                         "lines.geojson", "polygons.geojson", "zones.geojson")
        })
        harness = Harness(archive)
        result = harness.process()
        assert set(result.rows_by_kind) == set(GeometryKind)
        assert harness.store.count() == 6


class TestIdempotentReload:
    def test_second_load_replaces_first(self):
        harness = Harness(_osw_archive())

        harness.process()
        first = sorted((row[0], row[2]["properties"]["_id"]) for row in harness.store.rows)
        harness.process()
        second = sorted((row[0], row[2]["properties"]["_id"]) for row in harness.store.rows)

        assert first == second
        assert harness.store.count() == 5

    def test_other_datasets_untouched(self):
        harness = Harness(_osw_archive())
        harness.store.rows.append(("node", "d2", {"id": "keep"}, "u9"))
        harness.process()
        assert harness.store.rows_for("node", "d2") == [("node", "d2", {"id": "keep"}, "u9")]


class TestAtomicity:
    def test_second_chunk_failure_commits_nothing(self):
        harness = Harness(_osw_archive(), batch_size=2, fail_insert=("node", 1))
        harness.store.rows.append(("edge", "other", {}, "u2"))

        result = harness.process()

        assert result.state == LoadState.FAILED
        assert harness.store.count("d1") == 0
        assert harness.store.metadata == {}
        assert ("rollback",) in harness.store.events
        assert ("commit",) not in harness.store.events
        assert ("stats", "d1") not in harness.store.events
        success, detail = harness.outcomes[0]
        assert success is False
        assert detail.startswith("Error processing dataset: ")
        assert "node" in detail

    def test_truncated_download_rolls_back(self):
        archive = _osw_archive()
        stream = failing_chunks(archive, 20, StorageError("stream truncated"))
        harness = Harness(archive, stream=stream)

        result = harness.process()

        assert result.state == LoadState.FAILED
        assert ("rollback",) in harness.store.events
        assert harness.store.count() == 0
        assert "stream truncated" in harness.outcomes[0][1]

    def test_corrupt_archive_fails_load(self):
        harness = Harness(b"not a zip")
        result = harness.process()
        assert result.state == LoadState.FAILED
        assert harness.outcomes[0][0] is False


class TestPartialParse:
    def test_malformed_entry_skipped(self):
        archive = make_zip({
            "broken/edges.geojson": "{ this is not json",
            "nodes.geojson": make_collection(2),
        })
        harness = Harness(archive)

        result = harness.process()

        assert result.success
        assert result.skipped_entries == ["broken/edges.geojson"]
        assert len(harness.store.rows_for("node")) == 2
        assert harness.store.rows_for("edge") == []

    def test_non_collection_json_skipped(self):
        archive = make_zip({
            "points.geojson": [1, 2, 3],
            "lines.geojson": b"\xff\xfe not utf-8",
            "nodes.geojson": make_collection(1),
        })
        harness = Harness(archive)
        result = harness.process()
        assert result.success
        assert sorted(result.skipped_entries) == ["lines.geojson", "points.geojson"]


class TestRejectedBeforeSideEffects:
    def test_unknown_data_type(self):
        harness = Harness(_osw_archive())

        result = harness.process(make_message(data_type="bogus", file_upload_path=URL))

        assert result.state == LoadState.FAILED
        assert harness.store.events == []
        assert harness.data_source.transactions_opened == 0
        assert harness.outcomes == [(False, "Invalid data type")]

    @pytest.mark.parametrize("data_type", ["flex", "pathways"])
    def test_unimplemented_data_types(self, data_type):
        harness = Harness(_osw_archive())

        result = harness.process(make_message(data_type=data_type, file_upload_path=URL))

        assert result.state == LoadState.FAILED
        assert harness.store.events == []
        assert harness.storage.requested == []
        success, detail = harness.outcomes[0]
        assert success is False
        assert "not implemented" in detail

    def test_unauthorized_user(self):
        authorizer = FakeAuthorizer(allowed=False)
        harness = Harness(_osw_archive(), authorizer=authorizer)

        result = harness.process()

        assert result.state == LoadState.FAILED
        assert authorizer.checks == [("u1", "pg1", "osw")]
        assert harness.store.events == []
        assert harness.outcomes == [(False, "Unauthorized user")]

    def test_authorized_user_proceeds(self):
        harness = Harness(_osw_archive(), authorizer=FakeAuthorizer(allowed=True))
        assert harness.process().success

    def test_missing_fields(self):
        harness = Harness(_osw_archive())
        message = make_message(file_upload_path=URL)
        del message.data["user_id"]

        result = harness.process(message)

        assert result.state == LoadState.FAILED
        assert harness.store.events == []
        assert harness.outcomes[0][0] is False


class TestPhaseFailures:
    def test_delete_failure_opens_no_transaction(self):
        harness = Harness(_osw_archive(), fail_delete=True)

        result = harness.process()

        assert result.state == LoadState.FAILED
        assert harness.data_source.transactions_opened == 0
        assert harness.outcomes[0][0] is False

    def test_missing_blob_fails_before_delete(self):
        harness = Harness(_osw_archive())
        result = harness.process(make_message(file_upload_path="https://acct.blob.core.windows.net/osw/missing.zip"))
        assert result.state == LoadState.FAILED
        assert harness.store.events == []

    def test_statistics_failure_still_reports_success(self):
        harness = Harness(_osw_archive(), fail_stats=True)

        result = harness.process()

        assert result.state == LoadState.DONE
        assert result.statistics_refreshed is False
        assert harness.store.count() == 5
        assert harness.outcomes == [(True, "Data loaded successfully")]


class TestConstruction:
    def test_loader_table_must_be_exhaustive(self):
        with pytest.raises(ContractViolationError, match="pathways"):
            LoadOrchestrator(
                {
                    DataType.OSW: UnsupportedDatasetLoader(DataType.OSW),
                    DataType.FLEX: UnsupportedDatasetLoader(DataType.FLEX),
                },
                RecordingReporter(),
            )

    def test_create_wires_production_loaders(self):
        from config import get_config

        orchestrator = LoadOrchestrator.create(
            get_config(), FakeDataSource(FakeContentStore()), FakeStorage(), RecordingReporter()
        )
        assert isinstance(orchestrator.loaders[DataType.OSW], OswDatasetLoader)
        assert isinstance(orchestrator.loaders[DataType.FLEX], UnsupportedDatasetLoader)


class TestUnexpectedErrors:
    def test_encrypted_entry_rolls_back_and_reports(self):
        archive = patch_central_directory(_osw_archive(), "d1/nodes.geojson", flag_bits=0x1)
        harness = Harness(archive)

        result = harness.process()

        assert result.state == LoadState.FAILED
        assert ("rollback",) in harness.store.events
        assert harness.store.count() == 0
        assert len(harness.outcomes) == 1
        success, detail = harness.outcomes[0]
        assert success is False
        assert "encrypted" in detail

    def test_non_business_error_still_reports_once(self):
        class CrashingLoader(UnsupportedDatasetLoader):
            async def load(self, request, result):
                raise KeyError("lost")

        reporter = RecordingReporter()
        orchestrator = LoadOrchestrator(
            {data_type: CrashingLoader(data_type) for data_type in DataType}, reporter
        )

        result = asyncio.run(orchestrator.process(make_message(file_upload_path=URL)))

        assert result.state == LoadState.FAILED
        assert [(success, detail) for _, success, detail in reporter.reports] == [
            (False, "Error processing dataset: 'lost'")
        ]


class TestConcurrentKinds:
    def _archive(self):
        return make_zip({
            "a/nodes.geojson": make_collection(3, prefix="a"),
            "edges.geojson": make_collection(3, prefix="e"),
            "b/nodes.geojson": make_collection(3, prefix="b"),
        })

    def test_same_kind_entries_never_overlap(self):
        harness = Harness(self._archive(), batch_size=2, insert_delay=0.01)

        result = harness.process()

        assert result.success
        assert result.rows_by_kind == {GeometryKind.NODE: 6, GeometryKind.EDGE: 3}
        assert harness.repository.max_active_by_table == {"node": 1, "edge": 1}
        node_batches = [
            [feature["properties"]["_id"] for feature in features]
            for table, features in harness.repository.insert_calls if table == "node"
        ]
        assert node_batches == [["a0", "a1"], ["a2"], ["b0", "b1"], ["b2"]]
        ids = [row[2]["properties"]["_id"] for row in harness.store.rows_for("edge")]
        assert ids == ["e0", "e1", "e2"]

    def test_different_kinds_interleave(self):
        harness = Harness(self._archive(), batch_size=2, insert_delay=0.01)
        harness.process()

        assert harness.repository.max_active_total == 2
        tables = [event[1] for event in harness.store.events if event[0] == "insert"]
        first_node, last_node = tables.index("node"), len(tables) - 1 - tables[::-1].index("node")
        assert "edge" in tables[first_node:last_node]

    def test_earliest_failure_is_reported(self):
        archive = make_zip({
            "nodes.geojson": make_collection(4, prefix="n"),
            "edges.geojson": make_collection(1, prefix="e"),
        })
        harness = Harness(
            archive, batch_size=2, insert_delay=0.01, fail_inserts=(("node", 1), ("edge", 0))
        )

        result = harness.process()

        assert result.state == LoadState.FAILED
        assert harness.store.count() == 0
        assert "insert 0 into edge failed" in harness.outcomes[0][1]
