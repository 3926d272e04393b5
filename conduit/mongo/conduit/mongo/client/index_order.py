from enum import Enum

import pymongo


class IndexOrder(Enum):
    """Sort order of a single-field index."""

    ASC = pymongo.ASCENDING
    DESC = pymongo.DESCENDING

    @classmethod
    def parse(cls, value: "IndexOrder | str | int") -> "IndexOrder":
        """Accept a member, its name (``"asc"``/``"DESC"``) or its numeric value (``1``/``-1``)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.upper()]
            except KeyError:
                raise ValueError(f"Unknown index order: {value}") from None
        return cls(value)
