"""Classify SQL statements as ATTACH / DETACH / OTHER and extract attach targets.

This is a statement-type classifier over sqlglot's DuckDB token stream, not a
parser: it only understands the narrow grammar

    ATTACH [DATABASE] [IF NOT EXISTS] '<path>' [AS <alias>] [(<options>)]
    DETACH [DATABASE] [IF EXISTS] <name>

Anything that does not fit (unterminated or mismatched quotes, an unquoted
path) is OTHER. Nothing is executed or evaluated.
"""

from __future__ import annotations

import posixpath

import sqlglot
from sqlglot.tokens import Token, TokenType

from attachguard.statement._types import (
    PROXY_PREFIX,
    AttachStatement,
    ClassifiedStatement,
    Span,
    StatementKind,
)

_QUOTES = ("'", '"')
_OTHER = ClassifiedStatement(kind=StatementKind.OTHER)


def _tokens(sql: str) -> list[Token] | None:
    """Tokens of the first statement, or None if the text does not tokenize."""
    try:
        tokens = sqlglot.tokenize(sql, read="duckdb")
    except sqlglot.errors.SqlglotError:
        return None

    first: list[Token] = []
    for tok in tokens:
        if tok.token_type == TokenType.SEMICOLON:
            if first:
                break
            continue
        first.append(tok)
    return first


def _word(tok: Token | None) -> str:
    return tok.text.upper() if tok is not None else ""


def _skip_words(tokens: list[Token], pos: int, *words: str) -> int:
    """Advance past an exact keyword sequence if it is present at ``pos``."""
    end = pos + len(words)
    if end <= len(tokens) and all(_word(t) == w for t, w in zip(tokens[pos:end], words)):
        return end
    return pos


def _literal_span(sql: str, start: int) -> Span | None:
    """Span of a quoted literal opening at ``start``; doubled quotes are escapes."""
    if start >= len(sql) or sql[start] not in _QUOTES:
        return None
    quote = sql[start]
    i = start + 1
    while i < len(sql):
        if sql[i] == quote:
            if i + 1 < len(sql) and sql[i + 1] == quote:
                i += 2
                continue
            return Span(start, i + 1)
        i += 1
    return None


def _is_name(tok: Token) -> bool:
    if tok.token_type in (TokenType.VAR, TokenType.IDENTIFIER):
        return True
    # Non-reserved keywords are valid aliases (e.g. AS data, AS remote).
    return tok.token_type != TokenType.STRING and tok.text.isidentifier()


def _default_alias(url: str) -> str:
    """DuckDB names an un-aliased attach after the file stem."""
    base = posixpath.basename(url.split("?", 1)[0].rstrip("/"))
    return base.split(".", 1)[0] or base


def _classify_attach(sql: str, tokens: list[Token]) -> ClassifiedStatement:
    pos = _skip_words(tokens, 1, "DATABASE")
    after_ine = _skip_words(tokens, pos, "IF", "NOT", "EXISTS")
    if_not_exists = after_ine != pos
    pos = after_ine

    if pos >= len(tokens):
        return _OTHER
    path_tok = tokens[pos]
    if path_tok.token_type not in (TokenType.STRING, TokenType.IDENTIFIER):
        return _OTHER
    span = _literal_span(sql, path_tok.start)
    if span is None:
        return _OTHER

    raw_url = path_tok.text
    explicit = raw_url.startswith(PROXY_PREFIX)
    target_url = raw_url[len(PROXY_PREFIX):] if explicit else raw_url
    if not target_url:
        return _OTHER

    pos += 1
    alias: str | None = None
    if pos < len(tokens) and _word(tokens[pos]) == "AS":
        if pos + 1 >= len(tokens) or not _is_name(tokens[pos + 1]):
            return _OTHER
        alias = tokens[pos + 1].text

    return ClassifiedStatement(
        kind=StatementKind.ATTACH,
        attach=AttachStatement(
            raw_text=sql,
            target_url=target_url,
            alias=alias if alias is not None else _default_alias(target_url),
            explicit_proxy_requested=explicit,
            url_span=span,
            quote_char=sql[span.start],
            if_not_exists=if_not_exists,
        ),
    )


def _classify_detach(tokens: list[Token]) -> ClassifiedStatement:
    pos = _skip_words(tokens, 1, "DATABASE")
    pos = _skip_words(tokens, pos, "IF", "EXISTS")
    if pos >= len(tokens) or not _is_name(tokens[pos]):
        return _OTHER
    name = tokens[pos].text
    if name.upper() == "DATABASE":
        return _OTHER
    return ClassifiedStatement(kind=StatementKind.DETACH, detach_name=name)


def classify(sql: str) -> ClassifiedStatement:
    """Classify a single SQL statement.

    Never raises: text that cannot be tokenized or does not fit the ATTACH /
    DETACH grammar classifies as OTHER.
    """
    tokens = _tokens(sql)
    if not tokens:
        return _OTHER

    head = _word(tokens[0])
    if head == "ATTACH":
        return _classify_attach(sql, tokens)
    if head == "DETACH":
        return _classify_detach(tokens)
    return _OTHER


def is_attach_statement(sql: str) -> bool:
    return classify(sql).is_attach


def parse_attach(sql: str) -> AttachStatement | None:
    return classify(sql).attach


def parse_detach(sql: str) -> str | None:
    """Database name of a DETACH statement, or None."""
    return classify(sql).detach_name
