from collections.abc import Iterable, Iterator, Sized
from typing import Any, List, TypeVar

from conduit.core.logging.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class LazyIterable(Iterable):
    """Read-only iterable view over a lazy source such as a pymongo cursor.

    Host frameworks tend to inspect operation results by rendering or sizing them, which silently drains a cursor
    before the flow gets to iterate it. This view keeps iteration lazy and makes the eager paths visible:

    - iterating walks the source. Sources with a ``clone()`` method (pymongo cursors) are cloned first, so each
      iteration starts from the beginning;
    - the view has no ``__len__``, so ``list()``, ``tuple()`` and friends size their result while iterating instead
      of running the query once more up front;
    - `size`, ``in`` and `to_list` consume every element and log a warning;
    - ``repr()``/``str()`` never touch the elements.

    Example:
        .. code-block:: python

            results = LazyIterable(collection.find({"status": "new"}))
            for document in results:  # documents are fetched while iterating
                ...
    """

    def __init__(self, source: Iterable[T]):
        self._source = source

    def __iter__(self) -> Iterator[T]:
        clone = getattr(self._source, "clone", None)
        if callable(clone):
            return iter(clone())
        return iter(self._source)

    def size(self) -> int:
        self._warn_eager("size")
        return sum(1 for _ in self)

    def __contains__(self, item: Any) -> bool:
        self._warn_eager("__contains__")
        return any(element == item for element in self)

    def to_list(self) -> List[T]:
        self._warn_eager("to_list")
        return list(self)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} object at {hex(id(self))}>"

    __str__ = __repr__

    @staticmethod
    def _warn_eager(method: str) -> None:
        logger.warning(
            f"Method {method} needs to consume all the elements. It is inefficient and thus should be used with care."
        )


def lazy(source: Iterable[T]) -> Iterable[T]:
    """Return sized collections unchanged and wrap any other iterable in a `LazyIterable`."""
    if isinstance(source, Sized):
        return source
    return LazyIterable(source)
