"""ErpConfigService: save, status, sync stamp, connection test."""

from coop_ingestion.services import ErpConfigService
from tests.support import TEST_COOP_ID, FakeErpClient


def _service(session, erp_cache, erp_client_factory, clock):
    return ErpConfigService(session, erp_cache, client_factory=erp_client_factory, clock=clock)


def test_status_of_unconfigured_cooperative(session, erp_cache, erp_client_factory, clock):
    status = _service(session, erp_cache, erp_client_factory, clock).get_status(TEST_COOP_ID)
    assert status.configured is False
    assert status.is_connected is False
    assert status.url is None


def test_save_is_an_upsert(session, erp_cache, erp_client_factory, clock, erp_credentials):
    service = _service(session, erp_cache, erp_client_factory, clock)
    service.save_config(TEST_COOP_ID, erp_credentials)
    moved = type(erp_credentials)(
        url="https://erp2.example.coop",
        database="coop_db",
        username="integracion@example.coop",
        api_key="new-key",
    )
    service.save_config(TEST_COOP_ID, moved, is_connected=True)
    session.commit()

    status = service.get_status(TEST_COOP_ID)
    assert status.configured
    assert status.url == "https://erp2.example.coop"
    assert status.is_connected is True
    assert status.last_sync is None


def test_save_invalidates_cached_client(session, erp_cache, erp_client_factory, clock, erp_credentials):
    cached = FakeErpClient(erp_credentials)
    erp_cache.put(TEST_COOP_ID, cached)
    _service(session, erp_cache, erp_client_factory, clock).save_config(TEST_COOP_ID, erp_credentials)
    assert TEST_COOP_ID not in erp_cache
    assert cached.closed


def test_mark_synced_stamps_clock(session, erp_cache, erp_client_factory, clock, erp_credentials):
    service = _service(session, erp_cache, erp_client_factory, clock)
    service.save_config(TEST_COOP_ID, erp_credentials)
    service.mark_synced(TEST_COOP_ID)
    session.commit()

    status = service.get_status(TEST_COOP_ID)
    assert status.is_connected is True
    assert status.last_sync.replace(tzinfo=None) == clock.now().replace(tzinfo=None)


def test_mark_synced_without_config_is_noop(session, erp_cache, erp_client_factory, clock):
    _service(session, erp_cache, erp_client_factory, clock).mark_synced(TEST_COOP_ID)


def test_connection_test_success(session, erp_cache, erp_client_factory, clock, erp_credentials):
    ok, message = _service(session, erp_cache, erp_client_factory, clock).test_connection(
        erp_credentials
    )
    assert ok
    assert message == "Connected as user 7"
    assert erp_client_factory.built[0].closed
    assert TEST_COOP_ID not in erp_cache


def test_connection_test_failure(session, erp_cache, erp_client_factory, clock, erp_credentials):
    erp_client_factory.fail_auth = True
    ok, message = _service(session, erp_cache, erp_client_factory, clock).test_connection(
        erp_credentials
    )
    assert not ok
    assert "authentication failed" in message
    assert erp_client_factory.built[0].closed


def test_concurrent_read_before_commit_does_not_pin_old_credentials(
    session_factory, erp_cache, erp_source, erp_credentials
):
    with session_factory() as s:
        ErpConfigService(s, erp_cache).save_config(TEST_COOP_ID, erp_credentials)
        s.commit()
    moved = type(erp_credentials)(
        url="https://erp2.example.coop",
        database="coop_db",
        username="integracion@example.coop",
        api_key="new-key",
    )

    writer = session_factory()
    try:
        ErpConfigService(writer, erp_cache).save_config(TEST_COOP_ID, moved)
        # Not committed yet: another attempt still sees the saved row.
        during = erp_source.client_for(TEST_COOP_ID)
        assert during.credentials.url == "https://erp.example.coop"
        writer.commit()
    finally:
        writer.close()

    assert during.closed
    assert erp_source.client_for(TEST_COOP_ID).credentials.url == "https://erp2.example.coop"


def test_rolled_back_save_keeps_working_cache(session_factory, erp_cache, erp_source, erp_credentials):
    with session_factory() as s:
        ErpConfigService(s, erp_cache).save_config(TEST_COOP_ID, erp_credentials)
        s.commit()
    with session_factory() as s:
        ErpConfigService(s, erp_cache).save_config(TEST_COOP_ID, erp_credentials)
        s.rollback()
    assert erp_source.client_for(TEST_COOP_ID).credentials.url == "https://erp.example.coop"
