"""
Workflow Observer - in-memory progress mirror of pipeline runs.

Lifecycle: one WorkflowStore is created at application startup and lives for
the process; jobs are added per pipeline run and never evicted. Every step
transition notifies all subscribers synchronously with a full snapshot of
the job.

Steps move pending -> running -> completed | failed. Only `reset_job`
returns steps to pending.
"""
import copy
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from ..api.exceptions import JobNotFoundError
from ..core.config import WORKFLOW_MAX_LOG_ENTRIES
from ..core.logging_config import get_logger
from ..domain.entities import StepLogEntry, WorkflowJob, WorkflowStep
from ..domain.value_objects import StepStatus

logger = get_logger(__name__)

Subscriber = Callable[[WorkflowJob], None]
StepDefinition = Tuple[str, str, str]  # (id, name, description)


class InvalidStepTransition(ValueError):
    """A step was moved out of order, e.g. completed without running."""
    pass


class StepRecorder:
    """Handle given to code running inside a tracked step."""

    def __init__(self, store: "WorkflowStore", job_id: str, step_id: str):
        self._store = store
        self.job_id = job_id
        self.step_id = step_id
        self.result: Any = None

    def detail(self, message: str):
        self._store.add_detail(self.job_id, self.step_id, message)

    def log(self, message: str):
        self._store.append_log(self.job_id, self.step_id, message)

    def metadata(self, **values):
        self._store.update_metadata(self.job_id, self.step_id, **values)


class WorkflowStore:
    """
    Process-wide job/step map guarded by a lock.

    Readers always get deep-copied snapshots, so a snapshot never shows a
    partially applied step update.
    """

    def __init__(self, max_log_entries: int = WORKFLOW_MAX_LOG_ENTRIES):
        self.max_log_entries = max_log_entries
        self._jobs: Dict[str, WorkflowJob] = {}
        self._subscribers: Dict[int, Subscriber] = {}
        self._next_token = 0
        self._lock = threading.RLock()

    # Subscriptions

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber. The returned function unsubscribes and is safe to call repeatedly."""
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = callback

        def unsubscribe():
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    def _notify(self, snapshot: WorkflowJob):
        with self._lock:
            subscribers = list(self._subscribers.values())
        for callback in subscribers:
            try:
                callback(copy.deepcopy(snapshot))
            except Exception as e:
                logger.error(f"Workflow subscriber failed for job {snapshot.id}: {e}", exc_info=True)

    # Queries

    def get_job(self, job_id: str) -> Optional[WorkflowJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job else None

    def get_all_jobs(self) -> List[WorkflowJob]:
        """All jobs, most recently started first."""
        with self._lock:
            jobs = [copy.deepcopy(job) for job in self._jobs.values()]
        return sorted(jobs, key=lambda job: job.start_time, reverse=True)

    # Mutations

    def create_job(
        self,
        name: str,
        filename: str,
        steps: Iterable[StepDefinition],
        job_id: Optional[str] = None,
    ) -> WorkflowJob:
        job = WorkflowJob(
            id=job_id or str(uuid.uuid4()),
            name=name,
            filename=filename,
            steps=[WorkflowStep(id=sid, name=sname, description=desc) for sid, sname, desc in steps],
        )
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Workflow job {job.id} already exists")
            self._jobs[job.id] = job
            snapshot = copy.deepcopy(job)
        self._notify(snapshot)
        return snapshot

    def _mutate(
        self,
        job_id: str,
        step_id: Optional[str],
        fn: Callable[[WorkflowJob, Optional[WorkflowStep]], None],
    ) -> WorkflowJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(f"Job {job_id} not found")
            step = None
            if step_id is not None:
                step = job.get_step(step_id)
                if step is None:
                    raise JobNotFoundError(f"Step {step_id} not found in job {job_id}")
            fn(job, step)
            if job.status.is_terminal:
                job.end_time = job.end_time or datetime.now()
            snapshot = copy.deepcopy(job)
        self._notify(snapshot)
        return snapshot

    def _log(self, step: WorkflowStep, message: str):
        step.logs.append(StepLogEntry(message=message))
        overflow = len(step.logs) - self.max_log_entries
        if overflow > 0:
            del step.logs[:overflow]

    def start_step(self, job_id: str, step_id: str) -> WorkflowJob:
        def _start(job, step):
            if step.status != StepStatus.PENDING:
                raise InvalidStepTransition(f"Step {step_id} is {step.status.value}, cannot start")
            step.status = StepStatus.RUNNING
            step.start_time = datetime.now()
            self._log(step, f"Started at {step.start_time.isoformat()}")

        return self._mutate(job_id, step_id, _start)

    def _finish(self, step: WorkflowStep, status: StepStatus):
        if step.status != StepStatus.RUNNING:
            raise InvalidStepTransition(f"Step {step.id} is {step.status.value}, cannot finish")
        step.status = status
        step.end_time = datetime.now()
        if step.start_time:
            step.duration_ms = int((step.end_time - step.start_time).total_seconds() * 1000)

    def complete_step(self, job_id: str, step_id: str, result: Any = None) -> WorkflowJob:
        def _complete(job, step):
            self._finish(step, StepStatus.COMPLETED)
            step.result = result
            self._log(step, f"Completed at {step.end_time.isoformat()}")
            self._log(step, f"Duration: {step.duration_ms}ms")

        return self._mutate(job_id, step_id, _complete)

    def fail_step(
        self, job_id: str, step_id: str, error: str, metadata: Optional[Dict[str, Any]] = None
    ) -> WorkflowJob:
        """Mark a step failed, merging `metadata` in the same transition."""
        def _fail(job, step):
            self._finish(step, StepStatus.FAILED)
            step.error = error
            if metadata:
                step.metadata.update(metadata)
            self._log(step, f"Failed at {step.end_time.isoformat()}: {error}")

        return self._mutate(job_id, step_id, _fail)

    def add_detail(self, job_id: str, step_id: str, message: str) -> WorkflowJob:
        def _detail(job, step):
            step.details.append(message)
            if len(step.details) > self.max_log_entries:
                del step.details[: len(step.details) - self.max_log_entries]

        return self._mutate(job_id, step_id, _detail)

    def append_log(self, job_id: str, step_id: str, message: str) -> WorkflowJob:
        return self._mutate(job_id, step_id, lambda job, step: self._log(step, message))

    def update_metadata(self, job_id: str, step_id: str, **values) -> WorkflowJob:
        return self._mutate(job_id, step_id, lambda job, step: step.metadata.update(values))

    def set_processing_job_id(self, job_id: str, processing_job_id: str) -> WorkflowJob:
        def _set(job, step):
            job.processing_job_id = processing_job_id

        return self._mutate(job_id, None, _set)

    def reset_job(self, job_id: str) -> WorkflowJob:
        """Return every step to pending and clear what the last run captured."""
        def _reset(job, step):
            for s in job.steps:
                s.reset()
            job.start_time = datetime.now()
            job.end_time = None
            job.processing_job_id = None

        return self._mutate(job_id, None, _reset)

    @contextmanager
    def track(
        self,
        job_id: str,
        step_id: str,
        describe_error: Optional[Callable[[Exception], Dict[str, Any]]] = None,
    ) -> Iterator[StepRecorder]:
        """
        Run a block as one step: running on entry, completed on normal exit,
        failed (and re-raised) on exception. `describe_error` turns the
        exception into metadata stored on the failed step.
        """
        self.start_step(job_id, step_id)
        recorder = StepRecorder(self, job_id, step_id)
        try:
            yield recorder
        except Exception as e:
            metadata = describe_error(e) if describe_error else None
            self.fail_step(job_id, step_id, str(e) or type(e).__name__, metadata=metadata)
            raise
        self.complete_step(job_id, step_id, result=recorder.result)
