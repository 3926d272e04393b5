from typing import Any, Iterable, Sized, TypeVar

T = TypeVar("T")


def ifnone(val: T | None, default: T) -> T:
    """Return the given value if it is not None, else return the default."""
    return val if val is not None else default


def first_not_none(vals: Iterable, default: Any = None):
    """Returns the first not-None value in the given iterable, else returns the default."""
    return next((item for item in vals if item is not None), default)


def check_not_none(value: T | None, name: str = "value") -> T:
    """Return the value, raising a ValueError if it is None."""
    if value is None:
        raise ValueError(f"{name} must not be None")
    return value


def check_not_empty(value: T | None, name: str = "value") -> T:
    """Return the value, raising a ValueError if it is None or empty."""
    check_not_none(value, name)
    if isinstance(value, Sized) and len(value) == 0:
        raise ValueError(f"{name} must not be empty")
    return value
