"""Job finalizer for queued jobs."""
from pdf_core.domain.models import JobStatus, PageStatus
from pdf_core.pipeline.completion import JobFinalizer


def _job_with_pages(store, statuses, job_status=JobStatus.PROCESSING, job_id="job-1"):
    store.add_job(job_id, status=job_status, total_pages=len(statuses))
    store.insert_pages(job_id, range(1, len(statuses) + 1))
    for n, status in enumerate(statuses, start=1):
        if status == PageStatus.COMPLETED:
            store.upsert_page_result(job_id, n, f"text {n}")
        elif status != PageStatus.PENDING:
            store.pages[(job_id, n)] = store.page(job_id, n).model_copy(update={"status": status})


def test_outstanding_pages_only_record_progress(store):
    _job_with_pages(store, [PageStatus.COMPLETED, PageStatus.FAILED, PageStatus.PROCESSING, PageStatus.PENDING])

    assert JobFinalizer(store).check("job-1") is None

    job = store.get_job("job-1")
    assert job.status == JobStatus.PROCESSING
    assert job.processed_pages == 2


def test_all_pages_terminal_completes_job_with_joined_text(store):
    _job_with_pages(store, [PageStatus.COMPLETED, PageStatus.FAILED, PageStatus.COMPLETED])

    assert JobFinalizer(store).check("job-1") is JobStatus.COMPLETED

    job = store.get_job("job-1")
    assert job.status == JobStatus.COMPLETED
    assert job.processed_pages == 3
    assert job.parsed_content == {"numPages": 3, "textPerPage": 2, "failedPages": 1}
    assert job.extracted_text == "text 1\ntext 3"


def test_every_page_failed_still_completes_job(store):
    _job_with_pages(store, [PageStatus.FAILED, PageStatus.FAILED])

    assert JobFinalizer(store).check("job-1") is JobStatus.COMPLETED

    job = store.get_job("job-1")
    assert job.status == JobStatus.COMPLETED
    assert job.error_message is None
    assert job.processed_pages == 2
    assert job.parsed_content == {"numPages": 2, "textPerPage": 0, "failedPages": 2}
    assert job.extracted_text == ""


def test_queued_job_passes_through_processing(store):
    _job_with_pages(store, [PageStatus.COMPLETED], job_status=JobStatus.QUEUED)

    JobFinalizer(store).check("job-1")

    statuses = [f["status"] for _, f in store.job_writes if "status" in f]
    assert statuses == [JobStatus.PROCESSING, JobStatus.COMPLETED]


def test_second_check_is_a_no_op(store):
    _job_with_pages(store, [PageStatus.COMPLETED, PageStatus.COMPLETED])
    finalizer = JobFinalizer(store)
    finalizer.check("job-1")
    writes = len(store.job_writes)

    assert finalizer.check("job-1") is None
    assert len(store.job_writes) == writes


def test_text_write_failure_leaves_job_completed(store):
    _job_with_pages(store, [PageStatus.COMPLETED])
    store.fail_text_write = True

    assert JobFinalizer(store).check("job-1") is JobStatus.COMPLETED
    assert store.get_job("job-1").extracted_text is None


def test_progress_never_decreases(store):
    _job_with_pages(store, [PageStatus.COMPLETED, PageStatus.PENDING])
    store.jobs["job-1"] = store.get_job("job-1").model_copy(update={"processed_pages": 5})

    JobFinalizer(store).check("job-1")

    assert store.get_job("job-1").processed_pages == 5


def test_unknown_or_unsized_job_is_ignored(store):
    store.add_job("job-2", status=JobStatus.QUEUED)

    assert JobFinalizer(store).check("missing") is None
    assert JobFinalizer(store).check("job-2") is None
    assert store.job_writes == []


def test_already_failed_job_is_left_alone(store):
    _job_with_pages(store, [PageStatus.COMPLETED], job_status=JobStatus.FAILED)

    assert JobFinalizer(store).check("job-1") is None
    assert store.get_job("job-1").status == JobStatus.FAILED
    assert store.job_writes == []
