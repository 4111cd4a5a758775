from dataclasses import asdict, replace
from copy import deepcopy

from optic_measure.helpers.rw_lock import ReadWriteLock


# ---------- Thread-safe config wrapper ----------
class ThreadSafeConfig:
    """
    Wraps a config dataclass so the capture thread can read snapshots while
    another thread edits or reloads it.
    """

    def __init__(self, data_obj):
        self._lock = ReadWriteLock()
        self._data = data_obj

    def get(self):
        with self._lock.read_locked():
            return deepcopy(self._data)

    def set(self, field, value):
        self.update(**{field: value})

    def update(self, **kwargs):
        with self._lock.write_locked():
            # replace() re-runs __post_init__, so invalid values never land
            self._data = replace(self._data, **kwargs)

    def replace_all(self, data_obj):
        with self._lock.write_locked():
            self._data = data_obj

    def get_field(self, field):
        with self._lock.read_locked():
            return getattr(self._data, field)

    def get_raw(self):  # shared instance, read-only for callers
        with self._lock.read_locked():
            return self._data

    def asdict(self):
        with self._lock.read_locked():
            return asdict(self._data)
