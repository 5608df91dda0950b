"""Named column access for RealDictCursor rows and other mapping-like rows."""


def read_field(row, column, default=None):
    """Return ``row[column]``, or ``default`` when the row or column is absent.

    Positional rows such as plain tuples have no named columns and always
    yield ``default``.
    """
    if row is None:
        return default
    if hasattr(row, "get"):
        return row.get(column, default)
    try:
        return row[column]
    except (KeyError, IndexError, TypeError):
        return default
