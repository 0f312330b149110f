"""Persistent store of numbered records with a small header of integers."""

from __future__ import annotations

import os
import pickle
from pathlib import Path
from typing import Any


class RecordFile:
    """A file holding `info_len` header integers and records addressed by index.

    Records are kept in memory as serialized snapshots, so every `read`
    returns a fresh copy. Changes reach the disk on `close`, which leaves the
    object usable.
    """

    def __init__(self, path: str | os.PathLike[str], info_len: int = 1) -> None:
        if info_len < 0:
            raise ValueError("info_len must not be negative")
        self.path = Path(path)
        self.info_len = info_len
        if self.path.exists():
            with self.path.open("rb") as fh:
                state = pickle.load(fh)
            info = list(state["info"])
            if len(info) != info_len:
                raise ValueError(
                    f"{self.path} holds {len(info)} header values, expected {info_len}"
                )
            self._info: list[int] = info
            self._records: dict[int, bytes] = dict(state["records"])
        else:
            self._info = [0] * info_len
            self._records = {}
            self._save()

    def _check_slot(self, n: int) -> int:
        if not 1 <= n <= self.info_len:
            raise IndexError(f"header slot {n} out of range 1..{self.info_len}")
        return n - 1

    def get_info(self, n: int) -> int:
        """Return the n-th header integer (1-based)."""
        return self._info[self._check_slot(n)]

    def set_info(self, n: int, value: int) -> None:
        """Set the n-th header integer (1-based)."""
        self._info[self._check_slot(n)] = int(value)

    def read(self, index: int) -> Any:
        """Return a copy of the record stored at `index`."""
        try:
            blob = self._records[index]
        except KeyError:
            raise IndexError(f"no record at index {index}") from None
        return pickle.loads(blob)

    def write(self, index: int, record: Any) -> None:
        """Store a snapshot of `record` at `index`."""
        if index < 0:
            raise IndexError(f"record index {index} is negative")
        self._records[index] = pickle.dumps(record, protocol=pickle.HIGHEST_PROTOCOL)

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with tmp.open("wb") as fh:
            pickle.dump(
                {"info": self._info, "records": self._records},
                fh,
                protocol=pickle.HIGHEST_PROTOCOL,
            )
        os.replace(tmp, self.path)

    def close(self) -> None:
        """Write the current contents to disk."""
        self._save()

    def __enter__(self) -> RecordFile:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()