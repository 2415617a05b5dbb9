"""
Render job queue - one worker thread owns the FIFO and the active job.
"""
import logging
import queue
import threading
from typing import Callable, Iterable, Optional

from ..models.jobs import JobOptions, JobRecord, RenderCompletion
from ..models.versions import JobStatus, VersionMode
from ..storage import ProjectStore, new_job_id, project_root_name, utc_now


logger = logging.getLogger(__name__)


RenderRunner = Callable[[JobRecord], RenderCompletion]
CompletionCallback = Callable[[JobRecord], object]

_STOP = object()


class JobQueue:
    """
    FIFO of render jobs executed one at a time.

    The render step is an injected callable. Each job record is persisted on
    every status change; completion callbacks fire after the final record is
    written.
    """

    def __init__(
        self,
        store: ProjectStore,
        runner: RenderRunner,
        on_complete: Optional[Iterable[CompletionCallback]] = None,
    ):
        self.store = store
        self.runner = runner
        self.callbacks: list[CompletionCallback] = list(on_complete or [])
        self.active_job_id: Optional[str] = None
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

    def add_completion_callback(self, callback: CompletionCallback) -> None:
        self.callbacks.append(callback)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._start_lock:
            self._ensure_worker()

    def _ensure_worker(self) -> None:
        # Caller holds _start_lock
        if self.running:
            return
        self._thread = threading.Thread(target=self._work, name="render-queue", daemon=True)
        self._thread.start()

    def submit(
        self,
        url: str,
        owner: Optional[str] = None,
        mode: VersionMode = VersionMode.GENERATE,
        options: Optional[JobOptions] = None,
        root: Optional[str] = None,
        version: Optional[int] = None,
    ) -> JobRecord:
        """
        Persist a queued job and hand it to the worker.

        Args:
            url: Site the job renders
            owner: Optional owner, part of the root name
            mode: generate or rerender
            options: Job options carried to completion
            root: Project root, derived from url and owner when omitted
            version: Version number, the next free one for the root when omitted

        Returns:
            The queued JobRecord
        """
        root = root or project_root_name(url, owner)
        with self.store.locks(root):
            job = JobRecord(
                id=new_job_id(),
                url=url,
                owner=owner,
                root=root,
                version=version or self.store.next_version(root),
                mode=mode,
                options=options or JobOptions(),
                created_at=utc_now(),
            )
            self.store.save_job(job)
        logger.info(f"Queued {job.mode.value} job {job.id} for {root} v{job.version}")
        with self._start_lock:
            self._ensure_worker()
            self._queue.put(job.id)
        return job

    def join(self) -> None:
        """Block until every submitted job has been processed."""
        self._queue.join()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """
        Finish queued jobs, then stop the worker.

        If the worker is still busy when the timeout runs out it keeps running,
        so a later submit reuses it instead of starting a second worker.
        """
        thread = self._thread
        if thread is None or not thread.is_alive():
            return
        self._queue.put(_STOP)
        thread.join(timeout)
        if thread.is_alive():
            logger.warning(f"Render worker still busy after {timeout}s, leaving it running")

    def pending(self) -> int:
        return self._queue.qsize()

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    with self._start_lock:
                        # Work submitted after the stop request keeps this worker alive
                        if self._queue.empty():
                            self._thread = None
                            return
                    continue
                self._process(item)
            finally:
                self._queue.task_done()

    def _process(self, job_id: str) -> None:
        job = self.store.load_job(job_id)
        if job is None:
            logger.error(f"Job {job_id} vanished before it ran")
            return

        self.active_job_id = job.id
        job.status = JobStatus.RUNNING
        job.started_at = utc_now()
        self.store.save_job(job)
        logger.info(f"Running job {job.id} ({job.root} v{job.version})")

        try:
            completion = self.runner(job)
        except Exception as e:
            logger.error(f"Render runner failed for job {job.id}: {e}")
            completion = RenderCompletion(status=JobStatus.FAILED, exit_code=1, error=str(e))

        job.status = JobStatus.COMPLETED if completion.status == JobStatus.COMPLETED else JobStatus.FAILED
        job.exit_code = completion.exit_code
        job.error = completion.error
        job.artifacts = completion.artifacts.model_copy()
        job.finished_at = utc_now()
        if job.error:
            job.logs.append(job.error)
        self.store.save_job(job)
        self.active_job_id = None
        logger.info(f"Job {job.id} {job.status.value}")

        for callback in self.callbacks:
            try:
                callback(job)
            except Exception as e:
                logger.error(f"Completion callback failed for job {job.id}: {e}")
