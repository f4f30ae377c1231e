"""
Analysis job orchestration.

The orchestrator owns the job table and a FIFO queue of pending jobs. At most
one job runs at a time; inside a job, files are split into contiguous shards
that are analyzed concurrently on a thread pool, one analyzer per shard.
"""
import asyncio
import logging
import math
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Deque, Dict, List, Optional, Type

from pydantic import ValidationError as PydanticValidationError

from repokg.analysis.metrics import CodeMetrics
from repokg.config import AnalysisConfig
from repokg.core.entities import CodeEntity, LanguageType
from repokg.core.errors import NotFoundError, ParseError, UnsupportedLanguageError, ValidationError
from repokg.core.jobs import AnalysisJob, AnalysisRequest, AnalysisResult, AnalysisSummary, JobStatus
from repokg.core.relationships import CodeRelationship
from repokg.graph.storage.base import BaseGraphStorage
from repokg.parsers.base_analyzer import LanguageAnalyzer
from repokg.parsers.factory import AnalyzerFactory

from .acquisition import AcquiredRepository, AutoRepositoryAcquirer, RepositoryAcquirer
from .discovery import DiscoveredFile, FileDiscoverer

logger = logging.getLogger(__name__)

# Progress milestones (percent)
PROGRESS_STARTED = 10
PROGRESS_ACQUIRED = 20
PROGRESS_DISCOVERED = 30
PROGRESS_ANALYZED = 70
PROGRESS_RESOLVED = 80
PROGRESS_ENTITIES_STORED = 90
PROGRESS_DONE = 100


def partition(items: List[Any], workers: int) -> List[List[Any]]:
    """Split ``items`` into at most ``workers`` contiguous shards of ceil(n / workers)."""
    if not items:
        return []
    size = math.ceil(len(items) / max(1, workers))
    return [items[start:start + size] for start in range(0, len(items), size)]


def new_graph_id(job_id: str) -> str:
    return f"{job_id}_{int(time.time() * 1000)}"


class JobOrchestrator:
    """Runs analysis jobs end to end: acquire, discover, analyze, resolve, persist."""

    def __init__(self, storage: BaseGraphStorage, config: Optional[AnalysisConfig] = None,
                 acquirer: Optional[RepositoryAcquirer] = None,
                 analyzer_factory: Type[AnalyzerFactory] = AnalyzerFactory,
                 auto_process: bool = True):
        """
        Initialize the orchestrator.

        Args:
            storage: Connected graph storage that receives results
            config: Analysis configuration; defaults apply when omitted
            acquirer: Produces working trees; local paths and git URLs by default
            analyzer_factory: Registry used to create per-shard analyzers
            auto_process: Start draining the queue when a job is submitted
                from inside a running event loop
        """
        self.storage = storage
        self.config = config or AnalysisConfig()
        self.acquirer = acquirer or AutoRepositoryAcquirer(self.config.clone_directory)
        self.analyzer_factory = analyzer_factory
        self.auto_process = auto_process
        self.jobs: Dict[str, AnalysisJob] = {}
        self._queue: Deque[str] = deque()
        self._processing = asyncio.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.parallel_workers,
            thread_name_prefix="repokg-analyzer",
        )
        self._queue_task: Optional[asyncio.Task] = None
        self._closed = False
        self.metrics = CodeMetrics(
            function_complexity_threshold=self.config.function_complexity_threshold,
            class_complexity_threshold=self.config.class_complexity_threshold,
        )

    def submit_job(self, repository_url: str, branch: str = "main",
                   language: str = LanguageType.TYPESCRIPT.value, **options: Any) -> AnalysisJob:
        """
        Validate a request and enqueue a pending job.

        Args:
            repository_url: Git URL or local directory
            branch: Branch to analyze
            language: Language family of the repository
            **options: parallel_workers, max_file_size, include_tests

        Returns:
            The pending job

        Raises:
            ValidationError: If the request is malformed, the language is unsupported
                or the orchestrator has been shut down
        """
        if self._closed:
            raise ValidationError("Job orchestrator has been shut down")
        try:
            request = AnalysisRequest(repository_url=repository_url, branch=branch,
                                      language=language, **options)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid analysis request: {e}") from e
        if not self.analyzer_factory.is_language_supported(request.language):
            raise ValidationError(f"Unsupported language: {request.language.value}")

        job = AnalysisJob(
            repository_url=request.repository_url,
            branch=request.branch,
            language=request.language,
            parallel_workers=request.parallel_workers,
            max_file_size=request.max_file_size,
            include_tests=request.include_tests,
        )
        self.jobs[job.id] = job
        self._queue.append(job.id)
        logger.info(f"Created analysis job {job.id} for {job.repository_url} ({job.branch})")

        if self.auto_process:
            self._schedule_processing()
        return job

    def get_job(self, job_id: str) -> AnalysisJob:
        job = self.jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}")
        return job

    def list_jobs(self) -> List[AnalysisJob]:
        """All jobs, newest first."""
        return sorted(self.jobs.values(), key=lambda job: job.created_at, reverse=True)

    def get_status(self, job_id: str) -> Dict[str, Any]:
        return self.get_job(job_id).to_status_dict()

    def cancel_job(self, job_id: str) -> bool:
        """
        Cancel a pending job.

        Returns:
            True if the job was cancelled, False if it had already started or finished
        """
        job = self.get_job(job_id)
        if job.status != JobStatus.PENDING:
            return False
        job.mark_cancelled()
        try:
            self._queue.remove(job_id)
        except ValueError:
            pass
        logger.info(f"Job {job_id} cancelled")
        return True

    async def process_queue(self) -> None:
        """Drain the queue in FIFO order; returns at once if another drain is active."""
        if self._processing.locked():
            return
        async with self._processing:
            while self._queue:
                job = self.jobs[self._queue.popleft()]
                if job.status != JobStatus.PENDING:
                    continue
                await self._execute_job(job)

    async def run_job(self, repository_url: str, branch: str = "main",
                      language: str = LanguageType.TYPESCRIPT.value,
                      poll_interval: float = 0.1, **options: Any) -> AnalysisJob:
        """Submit a job and wait until it reaches a terminal state."""
        job = self.submit_job(repository_url, branch, language, **options)
        return await self.wait_for_job(job.id, poll_interval)

    async def wait_for_job(self, job_id: str, poll_interval: float = 0.1) -> AnalysisJob:
        job = self.get_job(job_id)
        while not job.is_terminal:
            if not self._processing.locked() and job_id in self._queue:
                await self.process_queue()
            else:
                await asyncio.sleep(poll_interval)
        return job

    def shutdown(self, wait: bool = True) -> None:
        """Cancel pending jobs and release the worker pool."""
        self._closed = True
        for job_id in list(self._queue):
            job = self.jobs[job_id]
            if job.status == JobStatus.PENDING:
                job.mark_cancelled()
        self._queue.clear()
        self._executor.shutdown(wait=wait)
        logger.info("Job orchestrator shut down")

    def _schedule_processing(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; job stays queued until process_queue() runs")
            return
        if self._queue_task is None or self._queue_task.done():
            self._queue_task = loop.create_task(self.process_queue())

    async def _execute_job(self, job: AnalysisJob) -> None:
        acquired: Optional[AcquiredRepository] = None
        stage = "Repository acquisition"
        started = time.perf_counter()
        job.mark_running()
        job.update_progress(PROGRESS_STARTED)
        logger.info(f"Job {job.id} started")

        try:
            acquired = await asyncio.to_thread(self.acquirer.acquire, job.repository_url, job.branch)
            job.update_progress(PROGRESS_ACQUIRED)

            stage = "File discovery"
            files = await asyncio.to_thread(self._discover, job, acquired.path)
            job.metadata.total_files = len(files)
            job.update_progress(PROGRESS_DISCOVERED)

            stage = "Analysis"
            entities = await self._analyze(job, [f.path for f in files])
            job.update_progress(PROGRESS_ANALYZED)

            stage = "Relationship extraction"
            relationships = await asyncio.to_thread(self._resolve, job, entities)
            job.metadata.relationships_found = len(relationships)
            job.update_progress(PROGRESS_RESOLVED)

            stage = "Persistence"
            graph_id = new_graph_id(job.id)
            await asyncio.to_thread(self.storage.store_entities, entities, graph_id)
            job.update_progress(PROGRESS_ENTITIES_STORED)
            await asyncio.to_thread(self.storage.store_relationships, relationships, graph_id)
            job.update_progress(PROGRESS_DONE)

            results = self._build_results(job, graph_id, entities, relationships,
                                          time.perf_counter() - started)
            job.mark_completed(results)
            logger.info(f"Job {job.id} completed: {len(entities)} entities, "
                        f"{len(relationships)} relationships in graph {graph_id}")
        except asyncio.CancelledError:
            job.mark_failed("Analysis was interrupted")
            raise
        except Exception as e:
            logger.error(f"Job {job.id} failed during {stage.lower()}: {e}", exc_info=True)
            job.mark_failed(f"{stage} failed: {e}")
        finally:
            if acquired is not None:
                try:
                    await asyncio.to_thread(self.acquirer.release, acquired)
                except Exception as cleanup_error:
                    logger.warning(f"Failed to release working tree {acquired.path}: {cleanup_error}")

    def _discover(self, job: AnalysisJob, root: str) -> List[DiscoveredFile]:
        include_tests = job.include_tests if job.include_tests is not None else self.config.include_tests
        exclude_patterns = list(self.config.exclude_patterns)
        if not include_tests:
            exclude_patterns.extend(self.config.test_patterns)

        discoverer = FileDiscoverer(
            extensions=self.analyzer_factory.get_analyzer_class(job.language).file_extensions,
            exclude_dirs=self.config.exclude_dirs,
            exclude_patterns=exclude_patterns,
            max_file_size=job.max_file_size or self.config.max_file_size,
        )
        return discoverer.discover(root)

    async def _analyze(self, job: AnalysisJob, paths: List[str]) -> List[CodeEntity]:
        workers = job.parallel_workers or self.config.parallel_workers
        shards = partition(paths, workers)
        logger.info(f"Job {job.id}: analyzing {len(paths)} files in {len(shards)} shards")

        shard_results = await asyncio.gather(*[
            self._analyze_shard(job, shard, self.analyzer_factory.create_analyzer(job.language, self.config))
            for shard in shards
        ])
        return [entity for shard_entities in shard_results for entity in shard_entities]

    async def _analyze_shard(self, job: AnalysisJob, shard: List[str],
                             analyzer: LanguageAnalyzer) -> List[CodeEntity]:
        loop = asyncio.get_running_loop()
        entities: List[CodeEntity] = []
        total = max(1, job.metadata.total_files)

        for path in shard:
            try:
                file_entities = await loop.run_in_executor(self._executor, analyzer.analyze, path)
            except UnsupportedLanguageError:
                raise
            except ParseError as e:
                logger.warning(f"Skipping {path}: {e}")
                job.record_skipped(path)
            except Exception as e:
                logger.warning(f"File analysis failed for {path}: {e}")
                job.record_skipped(path)
            else:
                entities.extend(file_entities)
                job.record_processed(path, len(file_entities))

            done = job.metadata.processed_files + job.metadata.skipped_files
            job.update_progress(PROGRESS_DISCOVERED + (PROGRESS_ANALYZED - PROGRESS_DISCOVERED) * done / total)
        return entities

    def _resolve(self, job: AnalysisJob, entities: List[CodeEntity]) -> List[CodeRelationship]:
        if not entities:
            return []
        analyzer = self.analyzer_factory.create_analyzer(job.language, self.config)
        return analyzer.extract_relationships(entities)

    def _build_results(self, job: AnalysisJob, graph_id: str, entities: List[CodeEntity],
                       relationships: List[CodeRelationship], elapsed: float) -> AnalysisResult:
        return AnalysisResult(
            job_id=job.id,
            graph_id=graph_id,
            entities=entities,
            relationships=relationships,
            metrics=self.metrics.calculate(entities, relationships),
            summary=AnalysisSummary(
                total_files=job.metadata.total_files,
                total_entities=len(entities),
                total_relationships=len(relationships),
                languages=sorted({entity.language.value for entity in entities}),
                analysis_time_seconds=round(elapsed, 3),
            ),
        )
