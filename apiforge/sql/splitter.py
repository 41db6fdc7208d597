"""Split raw DDL text into individual statements."""
from typing import List


def split_statements(sql: str) -> List[str]:
    """Split ``sql`` on top-level semicolons.

    Semicolons inside quoted strings, quoted identifiers, comments and
    Postgres dollar-quoted bodies do not terminate a statement. Empty
    statements and comment-only statements are dropped.
    """
    statements = []
    buf = []
    i = 0
    n = len(sql)
    has_code = False

    while i < n:
        ch = sql[i]

        if ch == "-" and sql.startswith("--", i):
            end = sql.find("\n", i)
            end = n if end == -1 else end
            buf.append(sql[i:end])
            i = end
            continue

        if ch == "/" and sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            end = n if end == -1 else end + 2
            buf.append(sql[i:end])
            i = end
            continue

        if ch in ("'", '"', "`"):
            end = _end_of_quoted(sql, i, ch)
            buf.append(sql[i:end])
            has_code = True
            i = end
            continue

        if ch == "$":
            tag = _dollar_tag(sql, i)
            if tag:
                close = sql.find(tag, i + len(tag))
                end = n if close == -1 else close + len(tag)
                buf.append(sql[i:end])
                has_code = True
                i = end
                continue

        if ch == ";":
            if has_code:
                statements.append("".join(buf).strip())
            buf = []
            has_code = False
            i += 1
            continue

        if not ch.isspace():
            has_code = True
        buf.append(ch)
        i += 1

    if has_code:
        statements.append("".join(buf).strip())

    return statements


def _end_of_quoted(sql: str, start: int, quote: str) -> int:
    """Index just past the closing quote; doubled quotes are escapes."""
    i = start + 1
    n = len(sql)
    while i < n:
        if sql[i] == quote:
            if i + 1 < n and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        if sql[i] == "\\" and quote == "'":
            i += 2
            continue
        i += 1
    return n


def _dollar_tag(sql: str, start: int) -> str:
    """Return the ``$tag$`` opening at ``start``, or an empty string."""
    end = start + 1
    while end < len(sql) and (sql[end].isalnum() or sql[end] == "_"):
        end += 1
    if end < len(sql) and sql[end] == "$":
        tag = sql[start:end + 1]
        # $1 style positional parameters are not dollar quotes
        if not tag[1:-1].isdigit():
            return tag
    return ""
