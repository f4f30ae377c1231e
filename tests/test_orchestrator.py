"""
Tests for job orchestration, discovery and the end-to-end pipeline.
"""
import os
import tempfile
import unittest

from repokg.config import AnalysisConfig
from repokg.core.entities import NodeType
from repokg.core.errors import AcquisitionError, NotFoundError, PersistenceError, ValidationError
from repokg.core.jobs import JobStatus
from repokg.core.relationships import RelationshipType
from repokg.graph.storage import MemoryGraphStorage
from repokg.pipeline import (
    AcquiredRepository,
    FileDiscoverer,
    LocalRepositoryAcquirer,
    JobOrchestrator,
    partition,
)


def write_files(root, files):
    for relative, content in files.items():
        path = os.path.join(root, relative)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            f.write(content)


class RecordingAcquirer(LocalRepositoryAcquirer):
    """Local acquirer that remembers releases and can fail on release."""

    def __init__(self, fail_release=False):
        self.released = []
        self.fail_release = fail_release

    def release(self, repository: AcquiredRepository) -> None:
        self.released.append(repository.path)
        if self.fail_release:
            raise OSError("cannot remove working tree")


class FailingStorage(MemoryGraphStorage):
    def store_entities(self, entities, graph_id):
        raise PersistenceError("database unavailable")


class TestPartition(unittest.TestCase):
    def test_contiguous_shards(self):
        self.assertEqual(partition(list(range(10)), 3), [[0, 1, 2, 3], [4, 5, 6, 7], [8, 9]])
        self.assertEqual(partition([1, 2], 5), [[1], [2]])
        self.assertEqual(partition([], 4), [])
        self.assertEqual(partition([1, 2, 3], 1), [[1, 2, 3]])


class TestFileDiscoverer(unittest.TestCase):
    def test_discover(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {
                "src/a.ts": "export const a = 1;\n",
                "src/b.tsx": "export const b = 2;\n",
                "src/types.d.ts": "declare const c: number;\n",
                "node_modules/lib/index.ts": "export {};\n",
                "README.md": "# readme\n",
                "src/big.ts": "x" * 200,
            })
            discoverer = FileDiscoverer(
                extensions=[".ts", ".tsx"],
                exclude_dirs=["node_modules"],
                exclude_patterns=["*.d.ts"],
                max_file_size=100,
            )
            found = discoverer.discover(tmpdir)

        self.assertEqual([os.path.basename(f.path) for f in found], ["a.ts", "b.tsx"])
        self.assertTrue(all(os.path.isabs(f.path) for f in found))


class TestJobOrchestrator(unittest.IsolatedAsyncioTestCase):
    """Test cases for JobOrchestrator."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = self.tmpdir.name
        self.storage = MemoryGraphStorage()
        self.storage.connect()
        self.acquirer = RecordingAcquirer()
        self.orchestrator = JobOrchestrator(
            self.storage, AnalysisConfig(parallel_workers=2), acquirer=self.acquirer,
        )

    def tearDown(self):
        self.orchestrator.shutdown()
        self.tmpdir.cleanup()

    async def test_end_to_end(self):
        write_files(self.root, {
            "x.ts": "export class Foo extends Bar {}\n",
            "y.ts": "export class Bar {}\n",
            "z.ts": "import { Foo } from './x';\n",
        })

        job = await self.orchestrator.run_job(self.root, "main", "typescript")

        self.assertEqual(job.status, JobStatus.COMPLETED, job.error)
        self.assertEqual(job.progress, 100)
        results = job.results
        files = [e for e in results.entities if e.type == NodeType.FILE]
        others = [e for e in results.entities if e.type != NodeType.FILE]
        self.assertEqual(len(files), 3)
        self.assertEqual(sorted(e.name for e in others), ["Bar", "Foo"])

        by_name = {e.name: e for e in results.entities}
        inherits = [r for r in results.relationships if r.type == RelationshipType.INHERITS]
        self.assertEqual(len(inherits), 1)
        self.assertEqual(inherits[0].source_id, by_name["Foo"].id)
        self.assertEqual(inherits[0].target_id, by_name["Bar"].id)

        imports = [r for r in results.relationships if r.type == RelationshipType.IMPORTS]
        self.assertEqual(len(imports), 1)
        self.assertEqual(imports[0].source_id, by_name["z.ts"].id)
        self.assertEqual(imports[0].target_id, by_name["x.ts"].id)

        stats = self.storage.get_graph_statistics(results.graph_id)
        self.assertEqual(stats["total_nodes"], 5)
        self.assertEqual(stats["relationship_types"], {"CONTAINS": 2, "INHERITS": 1, "IMPORTS": 1})
        self.assertEqual(job.metadata.processed_files, 3)
        self.assertEqual(self.acquirer.released, [os.path.abspath(self.root)])

    async def test_unparseable_file_is_skipped(self):
        write_files(self.root, {
            "good.ts": "export function ok() { return 1; }\n",
            "bad.ts": "export class Broken {\n  method( {\n",
        })

        job = await self.orchestrator.run_job(self.root)

        self.assertEqual(job.status, JobStatus.COMPLETED)
        self.assertEqual(job.metadata.total_files, 2)
        self.assertEqual(job.metadata.processed_files, 1)
        self.assertEqual(job.metadata.skipped_files, 1)
        self.assertTrue(job.metadata.failed_files[0].endswith("bad.ts"))
        self.assertFalse(any(e.file_path.endswith("bad.ts") for e in job.results.entities))

    async def test_shard_continues_after_failed_file(self):
        write_files(self.root, {
            "a_bad.ts": "export class Broken {\n  method( {\n",
            "b.ts": "export function b() { return 1; }\n",
            "c.ts": "export function c() { return 2; }\n",
        })

        job = await self.orchestrator.run_job(self.root, parallel_workers=1)

        self.assertEqual(job.status, JobStatus.COMPLETED, job.error)
        meta = job.metadata
        self.assertEqual((meta.total_files, meta.processed_files, meta.skipped_files), (3, 2, 1))
        self.assertTrue(meta.failed_files[0].endswith("a_bad.ts"))
        names = {e.name for e in job.results.entities}
        self.assertTrue({"b", "c", "b.ts", "c.ts"} <= names)

    async def test_accounting_holds_for_any_shard_count(self):
        write_files(self.root, {f"m{i}.ts": f"export const v{i} = {i};\n" for i in range(7)})
        for workers in (1, 3, 7, 16):
            with self.subTest(workers=workers):
                job = await self.orchestrator.run_job(self.root, parallel_workers=workers)
                meta = job.metadata
                self.assertEqual(job.status, JobStatus.COMPLETED)
                self.assertEqual(meta.processed_files + meta.skipped_files, meta.total_files)
                self.assertEqual(meta.total_files, 7)

    async def test_tests_and_oversized_files_are_excluded(self):
        write_files(self.root, {
            "app.ts": "export const app = 1;\n",
            "app.test.ts": "export const check = 1;\n",
            "huge.ts": "export const huge = '" + "x" * 500 + "';\n",
        })

        job = await self.orchestrator.run_job(self.root, max_file_size=100)
        self.assertEqual(job.metadata.total_files, 1)

        job = await self.orchestrator.run_job(self.root, max_file_size=100, include_tests=True)
        self.assertEqual(job.metadata.total_files, 2)

    async def test_empty_repository(self):
        job = await self.orchestrator.run_job(self.root)
        self.assertEqual(job.status, JobStatus.COMPLETED)
        self.assertEqual(job.metadata.total_files, 0)
        self.assertEqual(job.results.entities, [])

    async def test_python_repository(self):
        write_files(self.root, {
            "pkg/__init__.py": "",
            "pkg/models.py": "class Base:\n    pass\n\n\nclass User(Base):\n    pass\n",
            "pkg/views.py": "from .models import User\n\n\ndef show(user):\n    return user\n",
        })

        job = await self.orchestrator.run_job(self.root, language="python")

        self.assertEqual(job.status, JobStatus.COMPLETED, job.error)
        by_name = {e.name: e for e in job.results.entities}
        imports = [r for r in job.results.relationships
                   if r.type == RelationshipType.IMPORTS and r.is_resolved]
        self.assertEqual(len(imports), 1)
        self.assertEqual(imports[0].source_id, by_name["views.py"].id)
        self.assertEqual(imports[0].target_id, by_name["models.py"].id)
        inherits = [r for r in job.results.relationships if r.type == RelationshipType.INHERITS]
        self.assertEqual(inherits[0].target_id, by_name["Base"].id)

    async def test_acquisition_failure(self):
        job = await self.orchestrator.run_job(os.path.join(self.root, "missing"))
        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertTrue(job.error.startswith("Repository acquisition failed"))
        self.assertIsNone(job.results)
        self.assertEqual(self.acquirer.released, [])
        # Failed jobs stay queryable
        self.assertEqual(self.orchestrator.get_status(job.id)["status"], "failed")

    async def test_persistence_failure_still_releases(self):
        orchestrator = JobOrchestrator(FailingStorage(), acquirer=self.acquirer)
        try:
            write_files(self.root, {"a.ts": "export const a = 1;\n"})
            job = await orchestrator.run_job(self.root)
        finally:
            orchestrator.shutdown()

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error, "Persistence failed: database unavailable")
        self.assertEqual(len(self.acquirer.released), 1)

    async def test_release_error_does_not_mask_failure(self):
        acquirer = RecordingAcquirer(fail_release=True)
        orchestrator = JobOrchestrator(FailingStorage(), acquirer=acquirer)
        try:
            job = await orchestrator.run_job(self.root)
        finally:
            orchestrator.shutdown()

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error, "Persistence failed: database unavailable")
        self.assertEqual(len(acquirer.released), 1)

    async def test_invalid_requests_are_rejected(self):
        for kwargs in ({"repository_url": ""}, {"repository_url": self.root, "language": "cobol"},
                       {"repository_url": self.root, "parallel_workers": 0}):
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(ValidationError):
                    self.orchestrator.submit_job(**kwargs)
        self.assertEqual(self.orchestrator.list_jobs(), [])

    async def test_unknown_job(self):
        with self.assertRaises(NotFoundError):
            self.orchestrator.get_job("nope")
        with self.assertRaises(NotFoundError):
            self.orchestrator.cancel_job("nope")

    async def test_fifo_queue_and_cancel(self):
        orchestrator = JobOrchestrator(self.storage, acquirer=self.acquirer, auto_process=False)
        try:
            first = orchestrator.submit_job(self.root)
            second = orchestrator.submit_job(self.root)
            third = orchestrator.submit_job(self.root)

            self.assertTrue(orchestrator.cancel_job(second.id))
            self.assertFalse(orchestrator.cancel_job(second.id))

            await orchestrator.process_queue()
        finally:
            orchestrator.shutdown()

        self.assertEqual(first.status, JobStatus.COMPLETED)
        self.assertEqual(second.status, JobStatus.CANCELLED)
        self.assertEqual(third.status, JobStatus.COMPLETED)
        self.assertLessEqual(first.completed_at, third.started_at)
        self.assertFalse(orchestrator.cancel_job(first.id))
        self.assertEqual(len(orchestrator.list_jobs()), 3)

    async def test_shutdown_cancels_pending_jobs(self):
        orchestrator = JobOrchestrator(self.storage, acquirer=self.acquirer, auto_process=False)
        job = orchestrator.submit_job(self.root)
        orchestrator.shutdown()
        self.assertEqual(job.status, JobStatus.CANCELLED)

    async def test_no_jobs_accepted_after_shutdown(self):
        write_files(self.root, {f"m{i}.ts": f"export const v{i} = {i};\n" for i in range(3)})
        self.orchestrator.shutdown()

        with self.assertRaises(ValidationError):
            await self.orchestrator.run_job(self.root)
        self.assertEqual(self.orchestrator.list_jobs(), [])


class TestLocalRepositoryAcquirer(unittest.TestCase):
    def test_missing_directory(self):
        with self.assertRaises(AcquisitionError):
            LocalRepositoryAcquirer().acquire("/definitely/not/here", "main")

    def test_existing_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            acquired = LocalRepositoryAcquirer().acquire(tmpdir, "main")
            self.assertEqual(acquired.path, os.path.abspath(tmpdir))
            self.assertFalse(acquired.temporary)


if __name__ == "__main__":
    unittest.main()
