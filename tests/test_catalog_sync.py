import logging

import catalog_sync


def test_run_once_refreshes_and_logs_summary(tmp_path, remote, caplog):
    store = catalog_sync.build_store(str(tmp_path / "state.sqlite3"), remote=remote)

    with caplog.at_level(logging.INFO):
        code = catalog_sync.run_once(store)

    assert code == 0
    assert [p.id for p in store.products] == [1, 2, 3]
    assert "Total products: 3 (0 local + 3 API)" in caplog.text
    assert "3 added" in caplog.text


def test_run_once_reports_failure_when_nothing_is_available(tmp_path, remote):
    remote.fail_fetch = True
    store = catalog_sync.build_store(str(tmp_path / "state.sqlite3"), remote=remote)

    assert catalog_sync.run_once(store) == 1
    assert store.error


def test_second_run_reads_previous_snapshot(tmp_path, remote, caplog):
    db_path = str(tmp_path / "state.sqlite3")
    catalog_sync.run_once(catalog_sync.build_store(db_path, remote=remote))
    remote.fail_fetch = True

    store = catalog_sync.build_store(db_path, remote=remote)
    with caplog.at_level(logging.WARNING):
        code = catalog_sync.run_once(store)

    assert code == 0
    assert [p.id for p in store.products] == [1, 2, 3]
    assert "keeping 3 cached products" in caplog.text
