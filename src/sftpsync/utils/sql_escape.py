"""
SQL identifier and value escaping utilities for generated INSERT statements.
"""

import re

_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def validate_identifier(identifier: str) -> bool:
    """
    Validate that identifier contains only safe characters.

    Allows: letters, numbers and underscores, not starting with a number.
    Rejects: special characters, spaces, quotes.

    Args:
        identifier: Identifier to validate

    Returns:
        True if identifier is safe, False otherwise
    """
    if not identifier:
        return False
    return bool(_IDENTIFIER_RE.match(identifier))


def qualified_name(database: str | None, table: str) -> str:
    """
    Build `database.table` (or just `table`) from validated identifiers.

    Raises:
        ValueError: If either part is not a safe identifier
    """
    parts = [p for p in (database, table) if p]
    for part in parts:
        if not validate_identifier(part):
            raise ValueError(f"Unsafe SQL identifier: {part!r}")
    return ".".join(parts)


def escape_sql_value(value: str | None) -> str:
    """
    Escape a SQL literal value.

    Empty strings and None become NULL; everything else is quoted with
    single quotes doubled, which is the SQL standard.

    Example:
        >>> escape_sql_value("O'Brien")
        "'O''Brien'"
        >>> escape_sql_value("")
        'NULL'
    """
    if value is None or value == "":
        return "NULL"

    escaped = str(value).replace("'", "''")
    return f"'{escaped}'"
