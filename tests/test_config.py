from pathlib import Path

from task_portal.config import Settings


def test_defaults(monkeypatch):
    for name in ("DB_PATH", "LOG_LEVEL", "SEARCH_SYNC_MODE", "DEFAULT_PER_PAGE", "LOG_TO_FILE"):
        monkeypatch.delenv(f"TASK_PORTAL_{name}", raising=False)
    s = Settings.from_env()
    assert s.db_path == "./data/task_portal.db"
    assert s.default_per_page == 15
    assert s.search_sync_mode == "deferred"
    assert s.log_to_file is True


def test_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("TASK_PORTAL_DB_PATH", "/tmp/x.db")
    monkeypatch.setenv("TASK_PORTAL_LOG_LEVEL", "debug")
    monkeypatch.setenv("TASK_PORTAL_LOG_DIR", "/var/log/tasks")
    monkeypatch.setenv("TASK_PORTAL_LOG_TO_FILE", "no")
    monkeypatch.setenv("TASK_PORTAL_SEARCH_SYNC_MODE", "INLINE")
    monkeypatch.setenv("TASK_PORTAL_SEARCH_MAX_QUERY_LENGTH", "64")
    s = Settings.from_env()
    assert s.db_path == "/tmp/x.db"
    assert s.log_level == "DEBUG"
    assert s.log_dir == Path("/var/log/tasks")
    assert s.log_to_file is False
    assert s.search_sync_mode == "inline"
    assert s.search_max_query_length == 64


def test_bad_values_fall_back(monkeypatch):
    monkeypatch.setenv("TASK_PORTAL_DEFAULT_PER_PAGE", "500")
    monkeypatch.setenv("TASK_PORTAL_SEARCH_SYNC_MODE", "eventually")
    monkeypatch.setenv("TASK_PORTAL_SEARCH_SYNC_RETRIES", "many")
    s = Settings.from_env()
    assert s.default_per_page == 15
    assert s.search_sync_mode == "deferred"
    assert s.search_sync_retries == 3
