"""
Tests for the Soft Delete Toolkit CLI.
"""

import json
from datetime import datetime, timezone
from unittest.mock import patch

import click
import pytest
from click.testing import CliRunner
from sqlalchemy import Column, Integer, String, create_engine
from sqlalchemy.orm import Session, declarative_base

from softdelete_toolkit import (
    FindOptions,
    SoftDeleteMixin,
    SoftDeleteService,
    set_config,
)
from softdelete_toolkit.cli import cli, load_model, resolve_cutoff
from softdelete_toolkit.config import SoftDeleteConfig

Base = declarative_base()


class Article(Base, SoftDeleteMixin):
    """Article stored in the CLI test database."""

    __tablename__ = "articles"

    id = Column(Integer, primary_key=True)
    title = Column(String(100))


JANUARY = datetime(2026, 1, 1, 9, 0, 0)
MARCH = datetime(2026, 3, 1, 12, 30, 0)


@pytest.fixture
def runner():
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture
def database_url(tmp_path):
    """SQLite database with one active and two soft-deleted articles."""
    url = f"sqlite:///{tmp_path / 'articles.db'}"
    engine = create_engine(url)
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        old, recent = Article(title="old"), Article(title="recent")
        session.add_all([old, recent, Article(title="active")])
        session.commit()

        SoftDeleteService(session, Article, clock=lambda: JANUARY).delete(old)
        SoftDeleteService(session, Article, clock=lambda: MARCH).delete(recent)
        session.commit()

    engine.dispose()
    return url


@pytest.fixture
def model():
    """Resolve every MODEL argument to the test Article."""
    with patch("softdelete_toolkit.cli.load_model", return_value=Article) as mock_load:
        yield mock_load


def count_rows(url):
    engine = create_engine(url)
    with Session(engine) as session:
        service = SoftDeleteService(session, Article)
        total = service.count(FindOptions(with_deleted=True))
    engine.dispose()
    return total


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Soft Delete Toolkit" in result.output
        assert "purge" in result.output

    def test_cli_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_cli_no_command(self, runner):
        result = runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "Soft Delete Toolkit" in result.output


class TestConfigCommands:
    """Test configuration-related commands."""

    def test_config_show(self, runner):
        result = runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        assert "deleted_field" in result.output

    def test_config_show_json(self, runner):
        result = runner.invoke(cli, ["config", "show", "--format", "json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["retention_days"] == 90

    def test_config_show_yaml(self, runner):
        result = runner.invoke(cli, ["config", "show", "--format", "yaml"])
        assert result.exit_code == 0
        assert "deleted_date_field: deleted_date" in result.output

    def test_config_validate(self, runner):
        set_config(SoftDeleteConfig(database_url="sqlite://"))
        result = runner.invoke(cli, ["config", "validate"])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "Warnings" not in result.output

    def test_config_validate_warnings(self, runner):
        set_config(SoftDeleteConfig(retention_days=2))
        result = runner.invoke(cli, ["config", "validate"])
        assert result.exit_code == 0
        assert "Warnings" in result.output
        assert "database_url" in result.output

    def test_config_validate_same_fields(self, runner):
        set_config(SoftDeleteConfig(deleted_field="flag", deleted_date_field="flag"))
        result = runner.invoke(cli, ["config", "validate"])
        assert result.exit_code == 1


class TestStatusCommand:
    """Test the status command."""

    def test_status(self, runner, model, database_url):
        result = runner.invoke(
            cli, ["status", "app:Article", "--database-url", database_url]
        )

        assert result.exit_code == 0
        assert "Active" in result.output
        assert "Deleted" in result.output
        model.assert_called_once_with("app:Article")

    def test_status_from_environment(self, runner, model, database_url, monkeypatch):
        monkeypatch.setenv("SOFTDELETE_DATABASE_URL", database_url)
        result = runner.invoke(cli, ["status", "app:Article"])
        assert result.exit_code == 0

    def test_status_without_database(self, runner, model):
        result = runner.invoke(cli, ["status", "app:Article"])
        assert result.exit_code == 2
        assert "No database configured" in result.output


class TestListDeletedCommand:
    """Test listing soft-deleted records."""

    def test_json(self, runner, model, database_url):
        result = runner.invoke(
            cli,
            [
                "list-deleted",
                "app:Article",
                "--database-url",
                database_url,
                "--format",
                "json",
            ],
        )

        assert result.exit_code == 0
        records = json.loads(result.output)
        assert [r["title"] for r in records] == ["recent", "old"]
        assert records[0]["deleted_date"] == "2026-03-01 12:30:00"

    def test_csv(self, runner, model, database_url):
        result = runner.invoke(
            cli,
            [
                "list-deleted",
                "app:Article",
                "--database-url",
                database_url,
                "--format",
                "csv",
                "--limit",
                "1",
            ],
        )

        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert "title" in lines[0]
        assert len(lines) == 2
        assert "recent" in lines[1]

    def test_table(self, runner, model, database_url):
        result = runner.invoke(
            cli, ["list-deleted", "app:Article", "--database-url", database_url]
        )
        assert result.exit_code == 0
        assert "old" in result.output

    def test_nothing_deleted(self, runner, model, tmp_path):
        url = f"sqlite:///{tmp_path / 'empty.db'}"
        engine = create_engine(url)
        Base.metadata.create_all(engine)
        engine.dispose()

        result = runner.invoke(
            cli, ["list-deleted", "app:Article", "--database-url", url]
        )

        assert result.exit_code == 0
        assert "No deleted Article records" in result.output


class TestPurgeCommand:
    """Test purging soft-deleted records."""

    def test_dry_run(self, runner, model, database_url):
        result = runner.invoke(
            cli,
            [
                "purge",
                "app:Article",
                "--database-url",
                database_url,
                "--before",
                "2026-02-01",
                "--dry-run",
            ],
        )

        assert result.exit_code == 0
        assert "would be purged" in result.output
        assert count_rows(database_url) == 3

    def test_purge_with_confirmation(self, runner, model, database_url):
        result = runner.invoke(
            cli,
            [
                "purge",
                "app:Article",
                "--database-url",
                database_url,
                "--before",
                "2026-02-01",
            ],
            input="y\n",
        )

        assert result.exit_code == 0
        assert "Purged 1 Article record(s)" in result.output
        assert count_rows(database_url) == 2

    def test_purge_declined(self, runner, model, database_url):
        result = runner.invoke(
            cli,
            [
                "purge",
                "app:Article",
                "--database-url",
                database_url,
                "--before",
                "2026-02-01",
            ],
            input="n\n",
        )

        assert result.exit_code == 1
        assert count_rows(database_url) == 3

    def test_purge_older_than(self, runner, model, database_url):
        result = runner.invoke(
            cli,
            [
                "purge",
                "app:Article",
                "--database-url",
                database_url,
                "--older-than",
                "0",
                "--yes",
            ],
        )

        assert result.exit_code == 0
        assert count_rows(database_url) == 1

    def test_before_date_includes_that_day(self, runner, model, database_url):
        result = runner.invoke(
            cli,
            [
                "purge",
                "app:Article",
                "--database-url",
                database_url,
                "--before",
                "2026-03-01",
                "--yes",
            ],
        )

        assert result.exit_code == 0
        assert "Purged 2 Article record(s)" in result.output
        assert count_rows(database_url) == 1

    def test_nothing_to_purge(self, runner, model, database_url):
        result = runner.invoke(
            cli,
            [
                "purge",
                "app:Article",
                "--database-url",
                database_url,
                "--before",
                "2025-01-01",
                "--yes",
            ],
        )

        assert result.exit_code == 0
        assert "Nothing to purge" in result.output

    def test_conflicting_options(self, runner, model, database_url):
        result = runner.invoke(
            cli,
            [
                "purge",
                "app:Article",
                "--database-url",
                database_url,
                "--before",
                "2026-02-01",
                "--older-than",
                "30",
            ],
        )

        assert result.exit_code == 2
        model.assert_not_called()

    def test_invalid_before(self, runner, model, database_url):
        result = runner.invoke(
            cli,
            [
                "purge",
                "app:Article",
                "--database-url",
                database_url,
                "--before",
                "not a date",
            ],
        )

        assert result.exit_code == 1
        assert "invalid --before value" in result.output


class TestHelpers:
    """Test CLI helper functions."""

    def test_load_model(self):
        model = load_model("softdelete_toolkit.config:SoftDeleteConfig")
        assert model is SoftDeleteConfig

    @pytest.mark.parametrize(
        "path",
        ["Article", "softdelete_toolkit.config:Missing", "no_such_module_xyz:Article"],
    )
    def test_load_model_invalid(self, path):
        with pytest.raises(click.BadParameter):
            load_model(path)

    def test_resolve_cutoff_before(self):
        cutoff = resolve_cutoff("2026-02-01 10:00", None, 90)
        assert cutoff == datetime(2026, 2, 1, 10, 0)

    def test_resolve_cutoff_date_only(self):
        cutoff = resolve_cutoff("2026-02-01", None, 90)
        assert cutoff == datetime(2026, 2, 1, 23, 59, 59)

    def test_resolve_cutoff_retention(self):
        set_config(SoftDeleteConfig(timezone="UTC"))
        cutoff = resolve_cutoff(None, None, 30)
        now = datetime.now(timezone.utc).replace(tzinfo=None)

        assert 29 <= (now - cutoff).days <= 30
