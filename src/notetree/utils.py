"""Utility functions for the NoteTree server."""


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE wildcards to treat them as literals.

    Folder and note names may contain '%' or '_', which would otherwise
    widen a prefix match to unrelated subtrees.

    Args:
        value: Path prefix that may contain LIKE wildcards

    Returns:
        String with '%', '_', and '\\' escaped for use with ``ESCAPE '\\'``

    Example:
        >>> escape_like_pattern("/root/100%/")
        '/root/100\\%/'
        >>> escape_like_pattern("/root/my_notes/")
        '/root/my\\_notes/'
    """
    escape_table = str.maketrans(
        {
            "\\": "\\\\",
            "%": "\\%",
            "_": "\\_",
        }
    )
    return value.translate(escape_table)
