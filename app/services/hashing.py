"""Pluggable password hashing applied to a candidate before it is staged.

A Hasher receives the raw password and the record about to be staged and
returns the record to insert, with the hashed value substituted. Synchronous
functions and coroutine functions are both accepted through CallableHasher.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import bcrypt

from app.utils.paths import set_path

Record = dict[str, Any]
HashFunction = Callable[[str, Record], Record | Awaitable[Record]]


class Hasher(Protocol):
    async def process(self, password: str, record: Record) -> Record: ...


class BcryptHasher:
    """Hash the password field with bcrypt. Hashing runs in a worker thread."""

    def __init__(self, password_field: str = "password", rounds: int = 12) -> None:
        self.password_field = password_field
        self.rounds = rounds

    def _hash(self, password: str) -> str:
        # bcrypt only looks at the first 72 bytes
        return bcrypt.hashpw(password.encode("utf-8")[:72], bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    async def process(self, password: str, record: Record) -> Record:
        hashed = await asyncio.to_thread(self._hash, password)
        return set_path(record, self.password_field, hashed)

    @staticmethod
    def verify(password: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8")[:72], hashed.encode("utf-8"))
        except ValueError:
            return False


class CallableHasher:
    """Adapt a plain ``fn(password, record) -> record`` (sync or async) to Hasher."""

    def __init__(self, fn: HashFunction) -> None:
        self._fn = fn

    async def process(self, password: str, record: Record) -> Record:
        result = self._fn(password, record)
        if inspect.isawaitable(result):
            result = await result
        return result
