from __future__ import annotations

import pytest

import main as main_module
from db import get_conn
from errors import SyncLockedError
from reconcile import SyncResult


@pytest.fixture
def patched_main(monkeypatch, db_path):
    exported = []
    monkeypatch.setattr(main_module, "setup_logging", lambda: None)
    monkeypatch.setattr(main_module, "get_conn", lambda: get_conn(db_path))
    monkeypatch.setattr(main_module, "export_runs_to_excel", lambda: exported.append("runs"))
    monkeypatch.setattr(main_module, "export_logs_to_excel", lambda: exported.append("logs"))
    return exported


def test_main_exits_non_zero_when_a_phase_failed(monkeypatch, patched_main) -> None:
    failed = SyncResult(phase="teams", fetch_failed=True)
    monkeypatch.setattr(main_module, "upd_swiss_unihockey", lambda **kwargs: {"teams": failed})

    with pytest.raises(SystemExit) as exc:
        main_module.main()

    assert exc.value.code == 1
    assert patched_main == ["runs", "logs"]


def test_main_succeeds_with_errors_only(monkeypatch, patched_main) -> None:
    result = SyncResult(phase="players")
    result.add_error(10, "Missing fields: first_name", skipped=True)
    monkeypatch.setattr(main_module, "upd_swiss_unihockey", lambda **kwargs: {"players": result})

    main_module.main()

    assert patched_main == ["runs", "logs"]


def test_main_locked(monkeypatch, patched_main) -> None:
    def locked(**kwargs):
        raise SyncLockedError("Another sync run holds the lock")

    monkeypatch.setattr(main_module, "upd_swiss_unihockey", locked)

    with pytest.raises(SystemExit) as exc:
        main_module.main()

    assert exc.value.code == 2
    assert patched_main == []
