from conduit.core.base.conduit_base import Conduit, ConduitABC, ConduitABCMeta, ConduitMeta

__all__ = ["Conduit", "ConduitABC", "ConduitABCMeta", "ConduitMeta"]
