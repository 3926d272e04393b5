from conduit.mongo.utils.lazy_iterable import LazyIterable, lazy

__all__ = ["LazyIterable", "lazy"]
