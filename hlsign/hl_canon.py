from collections.abc import Mapping

import msgpack


def to_plain(obj):
    """Deep-convert mappings (OrderedDict, pydantic dumps, ...) to plain dict/list before msgpack.

    Insertion order is kept: it is the wire order.
    """
    if isinstance(obj, Mapping):
        return {k: to_plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_plain(v) for v in obj]
    return obj


def pack_action(action: Mapping) -> bytes:
    """Canonical msgpack bytes for an action (str keys, bin type for bytes)."""
    return msgpack.packb(to_plain(action), use_bin_type=True)
