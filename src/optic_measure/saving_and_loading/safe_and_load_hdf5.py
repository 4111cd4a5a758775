"""
HDF5 storage of dataclass trees.

Layout: every dataclass, list, tuple or dict becomes a group tagged with a
'__kind__' attribute (dataclass groups also carry '__class__'). Scalars and
None are attributes of their parent group; numeric arrays and numeric lists
are datasets. Restoring a dataclass needs its class in the registry.
"""
from __future__ import annotations

from dataclasses import fields, is_dataclass
from pathlib import Path
from typing import Any

import h5py
import numpy as np

FORMAT_VERSION = "1.0"
ROOT = "root"

_NONE = "__NONE__"
_KIND = "__kind__"
_CLASS = "__class__"
_LENGTH = "__length__"
_AS_LIST = "__list__"
_RESERVED = {_KIND, _CLASS, _LENGTH}

known_classes: dict[str, type] = {}


def register_dataclass(cls):
    """Class decorator: make a dataclass restorable by load_from_hdf5."""
    if not is_dataclass(cls):
        raise TypeError(f"{cls.__name__} is not a dataclass")
    known_classes[cls.__name__] = cls
    return cls


# -----------------------------------------------------------------------------
# Writing
# -----------------------------------------------------------------------------

def save_to_hdf5(filepath: str | Path, obj: Any) -> None:
    with h5py.File(filepath, "w") as f:
        f.attrs["__version__"] = FORMAT_VERSION
        _write_node(f, ROOT, obj)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.number)) and not isinstance(value, (bool, np.bool_))


def _write_node(parent: h5py.Group, name: str, value: Any) -> None:
    if value is None:
        parent.attrs[name] = _NONE
    elif isinstance(value, (bool, int, float, str)):
        parent.attrs[name] = value
    elif isinstance(value, np.generic):
        parent.attrs[name] = value.item()
    elif isinstance(value, np.ndarray):
        if value.dtype == object:
            raise TypeError(f"Object arrays cannot be stored ({name})")
        parent.create_dataset(name, data=value)
    elif isinstance(value, list) and value and all(_is_number(v) for v in value):
        parent.create_dataset(name, data=np.asarray(value)).attrs[_AS_LIST] = True
    elif is_dataclass(value) and not isinstance(value, type):
        group = parent.create_group(name)
        group.attrs[_KIND] = "dataclass"
        group.attrs[_CLASS] = type(value).__name__
        for f in fields(value):
            _write_node(group, f.name, getattr(value, f.name))
    elif isinstance(value, (list, tuple)):
        group = parent.create_group(name)
        group.attrs[_KIND] = "tuple" if isinstance(value, tuple) else "list"
        group.attrs[_LENGTH] = len(value)
        for idx, item in enumerate(value):
            _write_node(group, str(idx), item)
    elif isinstance(value, dict):
        group = parent.create_group(name)
        group.attrs[_KIND] = "dict"
        for key, item in value.items():
            if not isinstance(key, str) or key in _RESERVED:
                raise TypeError(f"Dict keys must be plain strings, got {key!r}")
            _write_node(group, key, item)
    else:
        raise TypeError(f"Cannot store {type(value).__name__} ({name})")


# -----------------------------------------------------------------------------
# Reading
# -----------------------------------------------------------------------------

def load_from_hdf5(filepath: str | Path, known: dict[str, type] | None = None) -> Any:
    with h5py.File(filepath, "r") as f:
        version = _scalar(f.attrs.get("__version__", FORMAT_VERSION))
        if version != FORMAT_VERSION:
            raise ValueError(f"Unsupported HDF5 format version: {version}")
        if ROOT not in f and ROOT not in f.attrs:
            raise ValueError(f"{filepath} holds no stored object")
        return _read_node(f, ROOT, known if known is not None else known_classes)


def _scalar(value: Any) -> Any:
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    elif isinstance(value, np.generic):
        value = value.item()
    return None if value == _NONE else value


def _read_node(parent: h5py.Group, name: str, known: dict[str, type]) -> Any:
    if name in parent.attrs:
        return _scalar(parent.attrs[name])

    node = parent[name]
    if isinstance(node, h5py.Dataset):
        data = node[()]
        return data.tolist() if node.attrs.get(_AS_LIST) else data

    kind = _scalar(node.attrs[_KIND])
    if kind == "dataclass":
        cls_name = _scalar(node.attrs[_CLASS])
        if cls_name not in known:
            raise ValueError(f"Unknown dataclass '{cls_name}'. Register it with register_dataclass.")
        cls = known[cls_name]
        kwargs = {f.name: _read_node(node, f.name, known)
                  for f in fields(cls) if f.name in node or f.name in node.attrs}
        return cls(**kwargs)

    if kind in ("list", "tuple"):
        items = [_read_node(node, str(idx), known) for idx in range(int(node.attrs[_LENGTH]))]
        return tuple(items) if kind == "tuple" else items

    if kind == "dict":
        keys = sorted(set(node.keys()) | {k for k in node.attrs if k not in _RESERVED})
        return {k: _read_node(node, k, known) for k in keys}

    raise ValueError(f"Unknown node kind '{kind}' at {node.name}")
