"""Test statement classification — ATTACH / DETACH / OTHER."""

from __future__ import annotations

import pytest

from attachguard.statement import (
    StatementKind,
    classify,
    is_attach_statement,
    parse_attach,
    parse_detach,
)


class TestAttach:
    def test_basic(self) -> None:
        sql = "ATTACH 'https://example.com/data.duckdb' AS remote"
        stmt = parse_attach(sql)
        assert stmt is not None
        assert stmt.target_url == "https://example.com/data.duckdb"
        assert stmt.alias == "remote"
        assert stmt.explicit_proxy_requested is False
        assert stmt.raw_text == sql
        assert stmt.url_span.slice(sql) == "'https://example.com/data.duckdb'"

    def test_case_insensitive_keyword(self) -> None:
        stmt = parse_attach("attach 'https://example.com/db.duckdb' as db")
        assert stmt is not None
        assert stmt.alias == "db"

    def test_database_keyword_and_if_not_exists(self) -> None:
        stmt = parse_attach("ATTACH DATABASE IF NOT EXISTS 's3://bucket/db.duckdb' AS db")
        assert stmt is not None
        assert stmt.target_url == "s3://bucket/db.duckdb"
        assert stmt.if_not_exists is True

    def test_double_quoted_url(self) -> None:
        sql = 'ATTACH "https://example.com/db.duckdb" AS db'
        stmt = parse_attach(sql)
        assert stmt is not None
        assert stmt.quote_char == '"'
        assert stmt.target_url == "https://example.com/db.duckdb"

    def test_proxy_marker_stripped(self) -> None:
        stmt = parse_attach("ATTACH 'proxy:https://example.com/db.duckdb' AS db")
        assert stmt is not None
        assert stmt.explicit_proxy_requested is True
        assert stmt.target_url == "https://example.com/db.duckdb"

    def test_proxy_marker_is_case_sensitive(self) -> None:
        stmt = parse_attach("ATTACH 'PROXY:https://example.com/db.duckdb' AS db")
        assert stmt is not None
        assert stmt.explicit_proxy_requested is False
        assert stmt.target_url == "PROXY:https://example.com/db.duckdb"

    def test_trailing_semicolon_not_in_alias(self) -> None:
        stmt = parse_attach("ATTACH 'https://example.com/db.duckdb' AS mydb;")
        assert stmt is not None
        assert stmt.alias == "mydb"

    def test_options_after_alias(self) -> None:
        stmt = parse_attach("ATTACH 'https://example.com/db.duckdb' AS db (READ_ONLY)")
        assert stmt is not None
        assert stmt.alias == "db"

    def test_quoted_alias(self) -> None:
        stmt = parse_attach('ATTACH \'https://example.com/db.duckdb\' AS "my db"')
        assert stmt is not None
        assert stmt.alias == "my db"

    def test_alias_defaults_to_file_stem(self) -> None:
        stmt = parse_attach("ATTACH 'https://example.com/path/sales.duckdb'")
        assert stmt is not None
        assert stmt.alias == "sales"

    def test_escaped_quote_in_url(self) -> None:
        sql = "ATTACH 'https://example.com/it''s.duckdb' AS db"
        stmt = parse_attach(sql)
        assert stmt is not None
        assert stmt.target_url == "https://example.com/it's.duckdb"
        assert stmt.url_span.slice(sql) == "'https://example.com/it''s.duckdb'"

    def test_leading_whitespace_and_comment(self) -> None:
        assert is_attach_statement("  -- attach remote\n  ATTACH 'https://x.com/a.db' AS a")

    def test_local_path(self) -> None:
        stmt = parse_attach("ATTACH 'local.duckdb' AS loc")
        assert stmt is not None
        assert stmt.target_url == "local.duckdb"


@pytest.mark.parametrize("sql", [
    "SELECT 'ATTACH https://example.com/db.duckdb'",
    "ATTACH",
    "ATTACH 'unterminated AS db",
    "ATTACH remote_db AS db",
    "ATTACH '' AS db",
    "ATTACH 'proxy:' AS db",
    "CREATE TABLE attach_log (id INT)",
    "",
])
def test_not_attach(sql: str) -> None:
    assert not is_attach_statement(sql)
    assert parse_attach(sql) is None


class TestDetach:
    def test_basic(self) -> None:
        result = classify("DETACH mydb")
        assert result.kind == StatementKind.DETACH
        assert result.detach_name == "mydb"

    def test_database_if_exists(self) -> None:
        assert parse_detach('DETACH DATABASE IF EXISTS "my-db"') == "my-db"

    def test_not_detach(self) -> None:
        assert parse_detach("SELECT 1") is None


def test_other_statement() -> None:
    result = classify("SELECT 1")
    assert result.kind == StatementKind.OTHER
    assert result.attach is None
    assert not result.is_attach
