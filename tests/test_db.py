import sqlite3
from dataclasses import replace

from zad import db
from zad import settings as settings_mod
from zad.models import Node, NodeType, Version


def test_upsert_and_list_nodes(tmp_db):
    db.upsert_node("cfg1", NodeType.config, current_version=Version.from_string("7.1"))
    db.upsert_node("proxy1", NodeType.proxy, wanted_version=Version.from_string("7.0.9"))
    row = db.upsert_node("cfg1", NodeType.config, current_version=Version.from_string("7.2.0"))

    assert row.current_version == "7.2.0"
    rows = db.list_node_rows()
    assert [r.hostname for r in rows] == ["cfg1", "proxy1"]
    assert rows[1].current_version is None
    assert rows[1].wanted_version == "7.0.9"


def test_repository_returns_node_snapshot(tmp_db):
    db.upsert_node("cfg1", NodeType.config, current_version=Version.from_string("7.1.0"))
    db.upsert_node("proxy1", NodeType.proxy)

    nodes = db.SqliteNodeRepository().list_nodes()
    assert nodes == [
        Node("cfg1", NodeType.config, current_version=Version.from_string("7.1.0")),
        Node("proxy1", NodeType.proxy),
    ]


def test_delete_node(tmp_db):
    db.upsert_node("tenant1", NodeType.tenant)
    assert db.delete_node("tenant1") is True
    assert db.delete_node("tenant1") is False
    assert db.list_node_rows() == []


def test_events_are_newest_first(tmp_db):
    db.log_event("info", "first", job="job")
    db.log_event("error", "second", version="7.1.0")
    events = db.latest_events(10)
    assert [(e["level"], e["message"]) for e in events] == [("ERROR", "second"), ("INFO", "first")]
    assert events[0]["version"] == "7.1.0"
    assert events[1]["job"] == "job"
    assert len(db.latest_events(1)) == 1


def test_job_control_flags(tmp_db):
    assert db.is_job_active("job")
    db.set_job_active("job", False)
    db.set_job_active("job", False)
    assert not db.is_job_active("job")
    assert db.is_job_active("other")
    db.set_job_active("job", True)
    assert db.is_job_active("job")


def test_directory_db_path_gets_file_inside(tmp_path, monkeypatch):
    d = tmp_path / "data"
    d.mkdir()
    monkeypatch.setattr(settings_mod, "settings", replace(settings_mod.settings, db_path=str(d)))
    db.init_db()
    db.log_event("INFO", "hello")

    conn = sqlite3.connect(str(d / "zad.db"))
    rows = conn.execute("SELECT message FROM events").fetchall()
    conn.close()
    assert rows == [("hello",)]
