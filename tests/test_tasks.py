import pytest
from celery.exceptions import Retry

from osc_portal import tasks
from osc_portal.core.celery_app import celery_app
from osc_portal.core.config import settings
from osc_portal.services.listeners import MAX_RETRIES

SUBMITTED = {
    "permohonan_id": "5d1c7f7e-0000-4000-8000-000000000001",
    "user_id": "5d1c7f7e-0000-4000-8000-000000000002",
    "company_id": "5d1c7f7e-0000-4000-8000-000000000003",
    "jenis_lesen_id": 2,
    "tarikh_serahan": "2026-10-17T09:30:00+00:00",
    "butiran_operasi": None,
}


class AlwaysFails:
    def __init__(self):
        self.attempts: list[int] = []

    async def handle(self, payload, attempt: int = 1):
        self.attempts.append(attempt)
        raise RuntimeError("Module 5 returned status 502")


def test_listener_task_retries_three_times_then_gives_up(monkeypatch):
    listener = AlwaysFails()
    countdowns: list[int] = []

    def fake_retry(exc=None, countdown=None, **kwargs):
        countdowns.append(countdown)
        return Retry(exc=exc, when=countdown)

    task = tasks.forward_to_review_queue
    monkeypatch.setattr(tasks, "ForwardToReviewQueueListener", lambda: listener)
    monkeypatch.setattr(task, "retry", fake_retry)

    outcomes = []
    for retries in range(MAX_RETRIES + 1):
        task.push_request(retries=retries)
        try:
            task.run(SUBMITTED)
        except Retry:
            outcomes.append("retry")
        except RuntimeError:
            outcomes.append("gave_up")
        finally:
            task.pop_request()

    assert task.max_retries == 3
    assert listener.attempts == [1, 2, 3, 4]
    assert outcomes == ["retry", "retry", "retry", "gave_up"]
    assert countdowns == [1, 5, 15]


def test_only_the_scan_job_carries_the_av_time_limit():
    assert tasks.scan_dokumen.time_limit == settings.av_scan_timeout
    assert tasks.forward_to_review_queue.time_limit is None
    assert celery_app.conf.task_time_limit is None
