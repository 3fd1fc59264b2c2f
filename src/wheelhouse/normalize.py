"""Project name normalization for index lookup keys."""


def normalize_name(raw_name: str) -> str:
    """Map a declared project name to its index key.

    ASCII letters and digits are kept and lowercased; every other character,
    including non-ASCII letters, becomes ``_``.

    Args:
        raw_name: Name as declared in the archive metadata.

    Returns:
        Normalized lookup key.
    """
    return "".join(
        char.lower() if char.isascii() and char.isalnum() else "_"
        for char in raw_name
    )
