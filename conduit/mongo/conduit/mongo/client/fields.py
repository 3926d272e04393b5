from typing import Dict, Iterable, Optional


def fields_set(fields: Optional[Iterable[str]]) -> Optional[Dict[str, int]]:
    """Build a projection including only the given fields.

    Returns None, meaning every field is returned, when no fields are given.

    Example:
        >>> fields_set(["name", "age"])
        {'name': 1, 'age': 1}
        >>> fields_set(None) is None
        True
    """
    if fields is None:
        return None
    projection = {field: 1 for field in fields}
    return projection or None
