"""
Concurrent ingestion of one period unit.

Threads released together by a barrier race the same
(cooperative, year, month, module).  The unit lock must leave exactly one
complete copy of the data, never a mix or a duplicate.

Runs against SQLite by default; set DATABASE_URL to a PostgreSQL database
to exercise the advisory lock path as well.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

from coop_ingestion.domain.types import FileUpload, IngestionStatus
from coop_kernel.domain.period import PeriodKey
from coop_kernel.domain.values import Module, UploadStatus
from coop_kernel.services.period_store import PeriodStore
from tests.support import TEST_COOP_ID

WORKERS = 6
KEY = PeriodKey(TEST_COOP_ID, 2025, 6)


def _race(orchestrator, content, overwrite):
    barrier = Barrier(WORKERS)

    def attempt(_):
        barrier.wait()
        return orchestrator.ingest(
            TEST_COOP_ID,
            2025,
            6,
            Module.BALANCE_SHEET,
            FileUpload(content, "balance.csv"),
            overwrite=overwrite,
        )

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        return list(pool.map(attempt, range(WORKERS)))


def test_overwrite_race_leaves_one_copy(orchestrator, session_factory, balance_csv):
    results = _race(orchestrator, balance_csv, overwrite=True)

    assert all(r.status == IngestionStatus.COMPLETED for r in results)
    with session_factory() as s:
        assert PeriodStore(s).count(KEY, Module.BALANCE_SHEET) == 13

    history = orchestrator.list_history(TEST_COOP_ID, limit=50)
    assert len(history) == WORKERS
    assert all(h.status == UploadStatus.SUCCESS for h in history)


def test_first_writer_wins_without_overwrite(orchestrator, session_factory, balance_csv):
    results = _race(orchestrator, balance_csv, overwrite=False)

    statuses = sorted(r.status.value for r in results)
    assert statuses.count(IngestionStatus.COMPLETED.value) == 1
    assert statuses.count(IngestionStatus.REJECTED.value) == WORKERS - 1
    with session_factory() as s:
        assert PeriodStore(s).count(KEY, Module.BALANCE_SHEET) == 13
    assert len(orchestrator.list_history(TEST_COOP_ID, limit=50)) == 1
