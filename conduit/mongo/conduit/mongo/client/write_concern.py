from enum import Enum

from pymongo import WriteConcern as MongoWriteConcern
from pymongo.database import Database


class WriteConcern(Enum):
    """Write acknowledgement levels accepted by write operations.

    Each member maps onto a ``pymongo.WriteConcern``. ``DATABASE_DEFAULT`` defers to whatever the target database
    is configured with.
    """

    NONE = "NONE"
    NORMAL = "NORMAL"
    SAFE = "SAFE"
    FSYNC_SAFE = "FSYNC_SAFE"
    REPLICAS_SAFE = "REPLICAS_SAFE"
    MAJORITY = "MAJORITY"
    DATABASE_DEFAULT = "DATABASE_DEFAULT"

    def to_mongo_write_concern(self, database: Database) -> MongoWriteConcern:
        if self is WriteConcern.DATABASE_DEFAULT:
            return database.write_concern
        return MongoWriteConcern(**_WRITE_CONCERN_OPTIONS[self])

    @classmethod
    def parse(cls, value: "WriteConcern | str") -> "WriteConcern":
        """Accept a member or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValueError(f"Unknown write concern: {value}") from None


_WRITE_CONCERN_OPTIONS = {
    WriteConcern.NONE: {"w": 0},
    WriteConcern.NORMAL: {"w": 0},
    WriteConcern.SAFE: {"w": 1},
    WriteConcern.FSYNC_SAFE: {"w": 1, "fsync": True},
    WriteConcern.REPLICAS_SAFE: {"w": 2},
    WriteConcern.MAJORITY: {"w": "majority"},
}
