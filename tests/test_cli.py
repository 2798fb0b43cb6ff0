"""prefsctl against a throwaway SQLite file."""

import pytest
from typer.testing import CliRunner

from mailprefs.cli import app
from mailprefs.db.session import build_engine, build_session_factory, init_db
from mailprefs.services.audit_service import SqlAuditStore

pytestmark = pytest.mark.unit

runner = CliRunner()


@pytest.fixture
def database_url(tmp_path, clock) -> str:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    engine = build_engine(url)
    init_db(engine)
    store = SqlAuditStore(build_session_factory(engine), clock=clock)
    store.record("a@example.com", "PAUSE")
    store.record("b@example.com", "BBAU")
    store.record("c@example.com", "PAUSE")
    engine.dispose()
    return url


def invoke(*args: str):
    return runner.invoke(app, list(args))


def test_db_init_creates_table(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'fresh.db'}"

    result = invoke("db", "init", "--database-url", url)

    assert result.exit_code == 0
    assert "Audit table ready" in result.output
    assert (tmp_path / "fresh.db").exists()


def test_summary_includes_defaults(database_url) -> None:
    result = invoke("records", "summary", "--database-url", database_url)

    assert result.exit_code == 0
    lines = {line.split()[0]: int(line.split()[1]) for line in result.output.splitlines()}
    assert lines == {"BBAU": 1, "PAUSE": 2, "UNSUBSCRIBE": 0}


def test_list_is_newest_first(database_url) -> None:
    result = invoke("records", "list", "--database-url", database_url)

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].endswith("c@example.com")
    assert lines[0].startswith("2026-01-15 11:00:02 AEDT")
    assert lines[-1] == "3 record(s)"


def test_list_filters_by_action(database_url) -> None:
    result = invoke("records", "list", "--action", "bbau", "--database-url", database_url)

    assert result.exit_code == 0
    assert "b@example.com" in result.output
    assert "a@example.com" not in result.output


def test_list_rejects_malformed_tag(database_url) -> None:
    result = invoke("records", "list", "--action", "not a tag", "--database-url", database_url)
    assert result.exit_code == 1


def test_export_to_stdout(database_url) -> None:
    result = invoke("records", "export", "PAUSE", "--database-url", database_url)

    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "Date,Email,Action",
        "2026-01-15 11:00:02 AEDT,c@example.com,PAUSE",
        "2026-01-15 11:00:00 AEDT,a@example.com,PAUSE",
    ]


def test_export_to_file(database_url, tmp_path) -> None:
    target = tmp_path / "out.csv"

    result = invoke("records", "export", "BBAU", "-o", str(target), "--database-url", database_url)

    assert result.exit_code == 0
    assert "Wrote 1 record(s)" in result.output
    assert target.read_text(encoding="utf-8").splitlines()[1].endswith("b@example.com,BBAU")


def test_clear_with_yes(database_url) -> None:
    result = invoke("records", "clear", "--yes", "--database-url", database_url)

    assert result.exit_code == 0
    assert "Cleared 3 record(s)" in result.output
    assert invoke("records", "list", "--database-url", database_url).output.strip() == "0 record(s)"


def test_clear_aborts_without_confirmation(database_url) -> None:
    result = runner.invoke(app, ["records", "clear", "--database-url", database_url], input="n\n")

    assert result.exit_code != 0
    assert "3 record(s)" in invoke("records", "list", "--database-url", database_url).output


@pytest.mark.parametrize(
    "args",
    [
        ("db", "init"),
        ("records", "summary"),
        ("records", "list"),
        ("records", "export", "PAUSE"),
        ("records", "clear", "--yes"),
    ],
)
def test_unopenable_database_exits_cleanly(tmp_path, args) -> None:
    url = f"sqlite:///{tmp_path / 'missing_dir' / 'audit.db'}"

    result = invoke(*args, "--database-url", url)

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)


@pytest.fixture
def captured_uvicorn(monkeypatch, tmp_path):
    import uvicorn

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("FLY_APP_NAME", raising=False)
    for key, value in {
        "CUSTOMERIO_SITE_ID": "site",
        "CUSTOMERIO_API_KEY": "key-0123456789",
        "ADMIN_USERNAME": "admin",
        "ADMIN_PASSWORD": "pass",
    }.items():
        monkeypatch.setenv(key, value)
    return calls


def test_serve_uses_port_setting(captured_uvicorn, monkeypatch) -> None:
    monkeypatch.setenv("PORT", "4100")

    result = invoke("serve")

    assert result.exit_code == 0
    [(args, kwargs)] = captured_uvicorn
    assert args == ("mailprefs.main:create_app",)
    assert kwargs["factory"] is True
    assert kwargs["port"] == 4100


def test_serve_port_option_overrides_setting(captured_uvicorn, monkeypatch) -> None:
    monkeypatch.setenv("PORT", "4100")

    result = invoke("serve", "--port", "5000")

    assert result.exit_code == 0
    assert captured_uvicorn[0][1]["port"] == 5000


def test_serve_without_credentials_exits_cleanly(captured_uvicorn, monkeypatch) -> None:
    monkeypatch.delenv("ADMIN_PASSWORD")

    result = invoke("serve")

    assert result.exit_code == 1
    assert captured_uvicorn == []
