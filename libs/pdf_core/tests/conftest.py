"""
Shared fixtures for pdf_core tests (fakes live in fakes.py).
"""
import pytest

from pdf_core.config_loader import DispatchPolicy, WorkerBudget
from pdf_core.domain.models import Job, JobStatus, PageTask

from fakes import FakeClock, InMemoryQueue, InMemoryStorage, InMemoryStore, make_pdf


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def queue(clock):
    return InMemoryQueue(clock)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def policy():
    return DispatchPolicy(inline_page_threshold=125, checkpoint_every=10)


@pytest.fixture
def budget():
    return WorkerBudget(max_wall_seconds=130, max_pages=30, lease_seconds=30, queue_name="pdf_page_queue")


@pytest.fixture
def queued_job(store, queue, storage, budget):
    """Factory: a queued job with `num_pages` pending page rows and messages already enqueued."""

    def _make(num_pages: int, job_id: str = "job-q", text_for=None) -> Job:
        path = f"uploads/{job_id}/big.pdf"
        storage.blobs[path] = make_pdf(num_pages, text_for)
        job = store.add_job(job_id, path, status=JobStatus.QUEUED, total_pages=num_pages)
        store.insert_pages(job_id, range(1, num_pages + 1))
        for n in range(1, num_pages + 1):
            queue.enqueue(
                budget.queue_name,
                PageTask(job_id=job_id, file_path=path, page_number=n, total_pages=num_pages).model_dump(),
            )
        return job

    return _make
