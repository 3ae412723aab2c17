"""Classify database errors raised on commit."""
from typing import Sequence


def is_unique_violation(error, constraint_name: str, table: str, columns: Sequence[str]) -> bool:
    """
    True when ``error`` reports a duplicate on the named unique key.

    PostgreSQL and MySQL quote the constraint name, SQLite lists the
    ``table.column`` pairs instead.
    """
    text = str(getattr(error, 'orig', error))
    if constraint_name in text:
        return True
    pairs = ', '.join(f'{table}.{column}' for column in columns)
    return f'UNIQUE constraint failed: {pairs}' in text
