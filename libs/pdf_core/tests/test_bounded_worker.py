"""Bounded worker: budgets, page isolation, redelivery and the per-invocation document cache."""
import pytest

from pdf_core.config_loader import WorkerBudget
from pdf_core.domain.models import JobStatus, PageStatus
from pdf_core.pipeline.worker import (
    STOP_PAGE_BUDGET,
    STOP_QUEUE_EMPTY,
    STOP_QUEUE_ERROR,
    STOP_WALL_TIME,
    BoundedWorker,
)

from fakes import FlakyEngine, InterleavingEngine, make_pdf


@pytest.fixture
def make_worker(store, queue, storage, budget, clock):
    def _make(engine=None, **budget_overrides):
        b = budget.model_copy(update=budget_overrides) if budget_overrides else budget
        kwargs = {"engine": engine} if engine is not None else {}
        return BoundedWorker(store, queue, storage, b, clock=clock, **kwargs)

    return _make


def _statuses(store, job_id):
    return [p.status for p in store.list_pages(job_id)]


def test_scenario_c_page_budget_leaves_rest_pending(store, queue, queued_job, make_worker):
    queued_job(50)

    report = make_worker().run()

    statuses = _statuses(store, "job-q")
    assert report.pages_done == 30
    assert report.stop_reason == STOP_PAGE_BUDGET
    assert sum(s in (PageStatus.COMPLETED, PageStatus.FAILED) for s in statuses) == 30
    assert statuses.count(PageStatus.PENDING) == 20
    assert len(queue.messages) == 20
    assert store.get_job("job-q").processed_pages == 30
    assert store.get_job("job-q").status == JobStatus.PROCESSING


def test_scenario_d_failing_page_is_isolated(store, queue, queued_job, make_worker):
    queued_job(10)

    report = make_worker(engine=FlakyEngine(failing_pages={7})).run()

    assert report.pages_skipped == 1
    assert report.pages_done == 9
    assert report.failed_pages == ["job-q:7"]
    page7 = store.page("job-q", 7)
    assert page7.status == PageStatus.FAILED
    assert page7.error_message == "PageProcessingError: broken content stream on page 7"
    assert page7.extracted_text is None
    assert 7 in queue.archived
    assert queue.archived[7]["payload"]["page_number"] == 7
    for n in list(range(1, 7)) + list(range(8, 11)):
        page = store.page("job-q", n)
        assert page.status == PageStatus.COMPLETED
        assert page.extracted_text == f"Page {n}"
        assert page.error_message is None


def test_archived_page_is_never_redelivered(store, queue, queued_job, make_worker, clock):
    queued_job(3)
    make_worker(engine=FlakyEngine(failing_pages={2})).run()

    clock.advance(3600)
    report = make_worker().run()

    assert report.stop_reason == STOP_QUEUE_EMPTY
    assert report.pages_done == 0
    assert store.page("job-q", 2).status == PageStatus.FAILED


def test_page_budget_counts_failures_too(store, queued_job, make_worker):
    queued_job(12)

    report = make_worker(engine=FlakyEngine(failing_pages={1, 3}), max_pages=5).run()

    assert report.pages_done + report.pages_skipped == 5
    assert _statuses(store, "job-q").count(PageStatus.PENDING) == 7


def test_wall_time_budget_stops_before_next_dequeue(store, queue, queued_job, make_worker, clock):
    queued_job(10)
    engine = FlakyEngine(clock=clock, seconds_per_page=50)

    report = make_worker(engine=engine).run()

    assert report.stop_reason == STOP_WALL_TIME
    assert report.pages_done == 3
    assert engine.calls == [1, 2, 3]
    assert report.elapsed_seconds == 150
    # messages never dequeued keep read_ct 0
    assert [m["read_ct"] for m in queue.messages.values()] == [0] * 7


def test_empty_queue_ends_invocation_immediately(queue, make_worker):
    report = make_worker().run()

    assert report.stop_reason == STOP_QUEUE_EMPTY
    assert report.pages_done == report.pages_skipped == 0
    assert report.elapsed_seconds == 0


def test_queue_read_error_stops_invocation(queue, queued_job, make_worker):
    queued_job(2)
    queue.fail_dequeue = True

    report = make_worker().run()

    assert report.stop_reason == STOP_QUEUE_ERROR
    assert report.pages_done == 0


def test_first_page_marks_job_processing(store, queued_job, make_worker):
    queued_job(3)

    make_worker(max_pages=1).run()

    assert store.page("job-q", 1).status == PageStatus.COMPLETED
    assert store.get_job("job-q").status == JobStatus.PROCESSING


def test_queued_job_completes_when_last_page_finishes(store, queued_job, make_worker):
    queued_job(4)

    make_worker().run()

    job = store.get_job("job-q")
    assert job.status == JobStatus.COMPLETED
    assert job.processed_pages == 4
    assert job.extracted_text == "Page 1\nPage 2\nPage 3\nPage 4"
    assert job.parsed_content == {"numPages": 4, "textPerPage": 4, "failedPages": 0}


def test_document_downloaded_once_per_file_per_invocation(store, queue, storage, budget, queued_job, make_worker):
    queued_job(3, job_id="job-a")
    queued_job(2, job_id="job-b")
    engine = FlakyEngine()

    report = make_worker(engine=engine).run()

    assert report.pages_done == 5
    assert storage.downloads == ["uploads/job-a/big.pdf", "uploads/job-b/big.pdf"]
    assert len(engine.opened) == 2
    assert all(doc.is_closed for doc in engine.opened)


def test_cache_is_not_shared_across_invocations(storage, queued_job, make_worker):
    queued_job(4)

    make_worker(max_pages=2).run()
    make_worker(max_pages=2).run()

    assert storage.downloads == ["uploads/job-q/big.pdf", "uploads/job-q/big.pdf"]


def test_download_failure_fails_only_that_page(store, storage, queued_job, make_worker):
    queued_job(2, job_id="job-a")
    queued_job(1, job_id="job-b")
    del storage.blobs["uploads/job-a/big.pdf"]

    report = make_worker().run()

    assert report.pages_skipped == 2
    assert report.pages_done == 1
    assert store.page("job-a", 1).error_message.startswith("StorageError: object not found")
    assert store.page("job-b", 1).status == PageStatus.COMPLETED
    job = store.get_job("job-a")
    assert job.status == JobStatus.COMPLETED
    assert job.error_message is None
    assert job.parsed_content == {"numPages": 2, "textPerPage": 0, "failedPages": 2}
    assert job.extracted_text == ""


def test_redelivery_after_crash_between_commit_and_delete_is_idempotent(store, queue, queued_job, make_worker, clock):
    queued_job(1)
    queue.fail_delete_ids.add(1)

    with pytest.raises(ConnectionError):
        make_worker().run()

    page = store.page("job-q", 1)
    assert page.status == PageStatus.COMPLETED
    assert page.extracted_text == "Page 1"
    assert 1 in queue.messages

    # still leased: invisible to other workers
    assert make_worker().run().stop_reason == STOP_QUEUE_EMPTY

    clock.advance(31)
    report = make_worker().run()

    assert report.pages_duplicate == 1
    assert report.pages_done == 0
    assert queue.messages == {}
    assert store.page("job-q", 1).extracted_text == "Page 1"
    job = store.get_job("job-q")
    assert job.status == JobStatus.COMPLETED
    assert job.extracted_text == "Page 1"


def test_page_interrupted_mid_extraction_is_reprocessed_after_lease(store, queue, queued_job, make_worker, clock):
    queued_job(2)
    engine = FlakyEngine(interrupt_pages={1})

    with pytest.raises(SystemExit):
        make_worker(engine=engine).run()

    assert store.page("job-q", 1).status == PageStatus.PROCESSING
    assert all(doc.is_closed for doc in engine.opened)

    clock.advance(31)
    report = make_worker(engine=engine).run()

    assert report.pages_done == 2
    assert store.page("job-q", 1).status == PageStatus.COMPLETED
    assert store.page("job-q", 1).extracted_text == "Page 1"
    assert store.get_job("job-q").status == JobStatus.COMPLETED


def test_concurrent_commits_of_same_page_converge(store, queued_job):
    queued_job(1)

    assert store.upsert_page_result("job-q", 1, "Page 1")
    assert store.upsert_page_result("job-q", 1, "Page 1")

    assert [p.extracted_text for p in store.list_pages("job-q")] == ["Page 1"]


def test_lease_reclaim_success_is_not_reverted_by_slow_failing_worker(store, queue, queued_job, make_worker, clock):
    queued_job(1)
    reports = {}

    def second_worker_reclaims():
        clock.advance(31)
        reports["b"] = make_worker().run()

    report_a = make_worker(engine=InterleavingEngine(second_worker_reclaims, failing_pages={1})).run()

    assert reports["b"].pages_done == 1
    assert report_a.pages_skipped == 1
    page = store.page("job-q", 1)
    assert page.status == PageStatus.COMPLETED
    assert page.extracted_text == "Page 1"
    assert page.error_message is None
    assert queue.messages == {} and queue.archived == {}
    job = store.get_job("job-q")
    assert job.status == JobStatus.COMPLETED
    assert job.parsed_content == {"numPages": 1, "textPerPage": 1, "failedPages": 0}
    assert job.extracted_text == "Page 1"


def test_lease_reclaim_failure_is_not_overwritten_by_slow_succeeding_worker(store, queue, queued_job, make_worker, clock):
    queued_job(1)
    reports = {}

    def second_worker_fails_page():
        clock.advance(31)
        reports["b"] = make_worker(engine=FlakyEngine(failing_pages={1})).run()

    report_a = make_worker(engine=InterleavingEngine(second_worker_fails_page)).run()

    assert reports["b"].pages_skipped == 1
    assert report_a.pages_done == 0
    page = store.page("job-q", 1)
    assert page.status == PageStatus.FAILED
    assert page.extracted_text is None
    assert page.error_message == "PageProcessingError: broken content stream on page 1"
    assert list(queue.archived) == [1]
    job = store.get_job("job-q")
    assert job.status == JobStatus.COMPLETED
    assert job.parsed_content == {"numPages": 1, "textPerPage": 0, "failedPages": 1}


def test_budget_defaults_match_reference_values():
    budget = WorkerBudget()
    assert (budget.max_wall_seconds, budget.max_pages, budget.lease_seconds) == (130, 30, 30)
    assert budget.queue_name == "pdf_page_queue"


def test_worker_handles_real_multiline_pages(store, storage, queue, budget, make_worker):
    from pdf_core.domain.models import PageTask

    path = "uploads/job-m/lines.pdf"
    storage.blobs[path] = make_pdf(1, lambda i: "first line\nsecond line")
    store.add_job("job-m", path, status=JobStatus.QUEUED, total_pages=1)
    store.insert_pages("job-m", [1])
    queue.enqueue(budget.queue_name, PageTask(job_id="job-m", file_path=path, page_number=1, total_pages=1).model_dump())

    make_worker().run()

    assert store.page("job-m", 1).extracted_text == "first line\nsecond line"
