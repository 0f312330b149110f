"""User accounts, sessions and privileges."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .bptree import BPlusTree, string_hash
from .storage import RecordFile

_TREE_INDEX = "user_bpt_index"
_TREE_DATA = "user_bpt_data"
_RECORDS = "user_river"

_FIRST_USER_PRIVILEGE = 10


@dataclass
class User:
    username: str
    password: str
    name: str
    mail_addr: str
    privilege: int = 0

    def __str__(self) -> str:
        return f"{self.username} {self.name} {self.mail_addr} {self.privilege}"


class UserSystem:
    """Stores accounts on disk and tracks who is logged in.

    Failed operations raise: ``PermissionError`` for missing logins or
    privileges, ``KeyError`` for unknown users and ``ValueError`` for
    conflicts.
    """

    def __init__(self, directory: str | os.PathLike[str] = ".") -> None:
        self._dir = Path(directory)
        self._sessions: dict[str, int] = {}
        self._open()

    def _open(self) -> None:
        self._tree = BPlusTree(self._dir / _TREE_INDEX, self._dir / _TREE_DATA)
        self._records = RecordFile(self._dir / _RECORDS, 1)

    def _find(self, username: str) -> int | None:
        found = self._tree.find(string_hash(username))
        return found[0] if found else None

    def _load(self, username: str) -> tuple[int, User]:
        index = self._find(username)
        if index is None:
            raise KeyError(f"no user named {username!r}")
        return index, self._records.read(index)

    def _session_level(self, username: str) -> int:
        try:
            return self._sessions[username]
        except KeyError:
            raise PermissionError(f"{username!r} is not logged in") from None

    def add_user(
        self,
        cur_username: str,
        username: str,
        password: str,
        name: str,
        mail_addr: str,
        privilege: int,
    ) -> User:
        """Create an account; the very first one is made without a login."""
        size = self._records.get_info(1)
        if size == 0:
            user = User(username, password, name, mail_addr, _FIRST_USER_PRIVILEGE)
        else:
            level = self._sessions.get(cur_username)
            if level is None or level <= privilege:
                raise PermissionError(
                    f"{cur_username!r} may not create a user of privilege {privilege}"
                )
            if self._find(username) is not None:
                raise ValueError(f"user {username!r} already exists")
            user = User(username, password, name, mail_addr, privilege)
        self._records.write(size, user)
        self._tree.insert(string_hash(username), size)
        self._records.set_info(1, size + 1)
        return user

    def login(self, username: str, password: str) -> None:
        """Start a session for `username`."""
        _, user = self._load(username)
        if user.password != password:
            raise PermissionError(f"wrong password for {username!r}")
        if username in self._sessions:
            raise ValueError(f"{username!r} is already logged in")
        self._sessions[username] = user.privilege

    def logout(self, username: str) -> None:
        """End the session of `username`."""
        self._session_level(username)
        del self._sessions[username]

    def query_profile(self, cur_username: str, username: str) -> User:
        """Return the profile of `username` as seen by `cur_username`."""
        level = self._session_level(cur_username)
        _, user = self._load(username)
        if level <= user.privilege and cur_username != username:
            raise PermissionError(f"{cur_username!r} may not view {username!r}")
        return user

    def modify_profile(
        self,
        cur_username: str,
        username: str,
        password: str | None = None,
        name: str | None = None,
        mail_addr: str | None = None,
        privilege: int | None = None,
    ) -> User:
        """Change the given fields of a profile; empty or None leaves a field alone."""
        level = self._session_level(cur_username)
        index, user = self._load(username)
        if (level <= user.privilege and cur_username != username) or (
            privilege is not None and privilege >= level
        ):
            raise PermissionError(f"{cur_username!r} may not modify {username!r}")
        if password:
            user.password = password
        if name:
            user.name = name
        if mail_addr:
            user.mail_addr = mail_addr
        if privilege is not None:
            user.privilege = privilege
        self._records.write(index, user)
        return user

    def is_logged_in(self, username: str) -> bool:
        """Tell whether `username` has an open session."""
        return username in self._sessions

    def has_user(self, username: str) -> bool:
        """Tell whether an account named `username` exists."""
        return self._find(username) is not None

    def clean(self) -> None:
        """Delete every account and session."""
        for name in (_TREE_INDEX, _TREE_DATA, _RECORDS):
            (self._dir / name).unlink(missing_ok=True)
        self._sessions.clear()
        self._open()

    def flush(self) -> None:
        """Write all accounts to disk."""
        self._tree.flush()
        self._records.close()