import pytest

import scripts.start_web as start_web


@pytest.fixture
def no_database(monkeypatch):
    monkeypatch.setattr(start_web.config, "DATABASE_URL", None)
    monkeypatch.setattr(start_web.config, "DB_NAME", None)
    monkeypatch.setattr(start_web.config, "DB_USER", None)
    monkeypatch.setattr(start_web.config, "DB_PASSWORD", None)
    monkeypatch.delenv("RUN_DB_INIT", raising=False)
    monkeypatch.delenv("SKIP_DB_INIT", raising=False)


def test_tables_skipped_without_database(no_database):
    assert start_web.should_create_tables() is False


def test_tables_created_with_individual_db_settings(no_database, monkeypatch):
    monkeypatch.setattr(start_web.config, "DB_NAME", "novels")
    monkeypatch.setattr(start_web.config, "DB_USER", "reader")
    monkeypatch.setattr(start_web.config, "DB_PASSWORD", "pw")

    assert start_web.should_create_tables() is True


def test_skip_flag_wins_over_run_flag(no_database, monkeypatch):
    monkeypatch.setattr(start_web.config, "DATABASE_URL", "postgresql://db/novels")
    monkeypatch.setenv("SKIP_DB_INIT", "true")
    monkeypatch.setenv("RUN_DB_INIT", "1")

    assert start_web.should_create_tables() is False


def test_worker_timeout_follows_provider_fetch_timeout(monkeypatch):
    monkeypatch.delenv("GUNICORN_TIMEOUT", raising=False)
    monkeypatch.setattr(start_web.config, "CRAWLER_HTTP_TOTAL_TIMEOUT_SECONDS", 90)

    assert start_web.worker_timeout_seconds() == 120


def test_gunicorn_command_runs_threaded_workers(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.delenv("GUNICORN_BIND", raising=False)
    monkeypatch.delenv("WEB_CONCURRENCY", raising=False)
    monkeypatch.setenv("WEB_THREADS", "8")
    monkeypatch.setenv("GUNICORN_TIMEOUT", "300")

    command = start_web.build_gunicorn_command()

    assert command[:2] == ["gunicorn", "app:app"]
    assert command[command.index("--bind") + 1] == "0.0.0.0:8080"
    assert command[command.index("--workers") + 1] == "2"
    assert command[command.index("--threads") + 1] == "8"
    assert command[command.index("--timeout") + 1] == "300"


def test_main_creates_tables_before_exec(no_database, monkeypatch):
    calls = []
    monkeypatch.setenv("RUN_DB_INIT", "1")
    monkeypatch.setattr(start_web.config, "HTTPS_PROXY", None)
    monkeypatch.setattr(start_web, "setup_database_standalone", lambda: calls.append("tables"))
    monkeypatch.setattr(start_web.os, "execvp", lambda file, args: calls.append(("exec", file)))

    start_web.main()

    assert calls == ["tables", ("exec", "gunicorn")]
