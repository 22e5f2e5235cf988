import pytest

from kbvault.api.exceptions import JobNotFoundError
from kbvault.domain.entities import WorkflowStep, derive_workflow_status
from kbvault.domain.value_objects import StepStatus
from kbvault.services.workflow_observer import InvalidStepTransition, WorkflowStore

STEPS = [
    ("a", "Step A", "first"),
    ("b", "Step B", "second"),
    ("c", "Step C", "third"),
]


def _steps(*statuses):
    return [WorkflowStep(id=str(i), name="s", description="", status=s) for i, s in enumerate(statuses)]


@pytest.mark.parametrize("statuses,expected", [
    ((StepStatus.PENDING, StepStatus.PENDING), StepStatus.PENDING),
    ((StepStatus.COMPLETED, StepStatus.RUNNING), StepStatus.RUNNING),
    ((StepStatus.COMPLETED, StepStatus.PENDING), StepStatus.PENDING),
    ((StepStatus.COMPLETED, StepStatus.COMPLETED), StepStatus.COMPLETED),
    ((StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.PENDING), StepStatus.FAILED),
    ((StepStatus.RUNNING, StepStatus.FAILED), StepStatus.FAILED),
])
def test_job_status_is_derived_from_steps(statuses, expected):
    assert derive_workflow_status(_steps(*statuses)) == expected


def test_track_marks_step_completed_with_timing_logs():
    store = WorkflowStore()
    job = store.create_job("Job", "doc.pdf", STEPS)

    with store.track(job.id, "a") as step:
        step.detail("did the thing")
        step.metadata(count=3)

    snapshot = store.get_job(job.id)
    step_a = snapshot.get_step("a")
    assert step_a.status == StepStatus.COMPLETED
    assert step_a.details == ["did the thing"]
    assert step_a.metadata == {"count": 3}
    assert step_a.duration_ms is not None
    assert step_a.logs[0].message.startswith("Started at")
    assert step_a.logs[-1].message.startswith("Duration:")
    assert snapshot.status == StepStatus.PENDING


def test_track_marks_step_failed_and_reraises():
    store = WorkflowStore()
    job = store.create_job("Job", "doc.pdf", STEPS)

    with pytest.raises(RuntimeError, match="boom"):
        with store.track(job.id, "a"):
            raise RuntimeError("boom")

    snapshot = store.get_job(job.id)
    assert snapshot.get_step("a").status == StepStatus.FAILED
    assert snapshot.get_step("a").error == "boom"
    assert snapshot.status == StepStatus.FAILED
    assert snapshot.failed_step.id == "a"
    assert snapshot.end_time is not None


def test_completing_a_pending_step_is_rejected():
    store = WorkflowStore()
    job = store.create_job("Job", "doc.pdf", STEPS)
    with pytest.raises(InvalidStepTransition):
        store.complete_step(job.id, "a")


def test_starting_a_running_step_is_rejected():
    store = WorkflowStore()
    job = store.create_job("Job", "doc.pdf", STEPS)
    store.start_step(job.id, "a")
    with pytest.raises(InvalidStepTransition):
        store.start_step(job.id, "a")


def test_unknown_job_raises():
    store = WorkflowStore()
    assert store.get_job("missing") is None
    with pytest.raises(JobNotFoundError):
        store.start_step("missing", "a")


def test_subscribers_receive_snapshots():
    store = WorkflowStore()
    received = []
    store.subscribe(received.append)

    job = store.create_job("Job", "doc.pdf", STEPS)
    store.start_step(job.id, "a")

    assert [s.get_step("a").status for s in received] == [StepStatus.PENDING, StepStatus.RUNNING]
    # Snapshots are copies
    received[0].steps[0].status = StepStatus.FAILED
    assert store.get_job(job.id).get_step("a").status == StepStatus.RUNNING


def test_unsubscribe_is_idempotent():
    store = WorkflowStore()
    received = []
    unsubscribe = store.subscribe(received.append)
    unsubscribe()
    unsubscribe()

    store.create_job("Job", "doc.pdf", STEPS)
    assert received == []


def test_failing_subscriber_does_not_block_others():
    store = WorkflowStore()
    received = []

    def broken(snapshot):
        raise RuntimeError("subscriber bug")

    store.subscribe(broken)
    store.subscribe(received.append)

    store.create_job("Job", "doc.pdf", STEPS)
    assert len(received) == 1


def test_step_logs_are_bounded():
    store = WorkflowStore(max_log_entries=5)
    job = store.create_job("Job", "doc.pdf", STEPS)
    store.start_step(job.id, "a")
    for i in range(20):
        store.append_log(job.id, "a", f"line {i}")

    logs = store.get_job(job.id).get_step("a").logs
    assert len(logs) == 5
    assert logs[-1].message == "line 19"
    assert logs[0].message == "line 15"


def test_reset_job_returns_every_step_to_pending():
    store = WorkflowStore()
    job = store.create_job("Job", "doc.pdf", STEPS)
    store.set_processing_job_id(job.id, "row-1")
    with store.track(job.id, "a"):
        pass
    with pytest.raises(ValueError):
        with store.track(job.id, "b"):
            raise ValueError("bad")

    store.reset_job(job.id)

    snapshot = store.get_job(job.id)
    assert snapshot.status == StepStatus.PENDING
    assert all(step.status == StepStatus.PENDING for step in snapshot.steps)
    assert all(step.logs == [] and step.error is None for step in snapshot.steps)
    assert snapshot.processing_job_id is None
    assert snapshot.end_time is None


def test_get_all_jobs_most_recent_first():
    store = WorkflowStore()
    first = store.create_job("First", "a.pdf", STEPS)
    second = store.create_job("Second", "b.pdf", STEPS)
    store.reset_job(first.id)

    assert [job.id for job in store.get_all_jobs()] == [first.id, second.id]


def test_tracked_failure_carries_described_metadata_in_first_failed_snapshot():
    store = WorkflowStore()
    job = store.create_job("Job", "doc.pdf", STEPS)
    failed = []
    store.subscribe(lambda snapshot: failed.append(snapshot) if snapshot.status == StepStatus.FAILED else None)

    with pytest.raises(RuntimeError):
        with store.track(job.id, "a", describe_error=lambda e: {"error_category": "UNKNOWN_ERROR"}):
            raise RuntimeError("boom")

    assert len(failed) == 1
    step = failed[0].get_step("a")
    assert step.error == "boom"
    assert step.metadata["error_category"] == "UNKNOWN_ERROR"
