"""In-memory stand-ins for asyncpg pools and connections used by unit tests."""

from typing import Any, Dict, List, Optional


class FakeTransaction:
    """Records begin/commit/rollback on the owning connection."""

    def __init__(self, conn: "FakeConnection"):
        self.conn = conn

    async def __aenter__(self):
        self.conn.events.append(("begin",))
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.conn.events.append(("rollback",) if exc_type else ("commit",))
        return False


class FakeConnection:
    """
    Records every statement and answers column lookups from a dict.

    Args:
        columns: Table name -> live column names
        fetchrow_result: Row returned by fetchrow
        fail_on: SQL substring that makes a statement raise ``error``
        error: Exception raised for ``fail_on`` statements
    """

    def __init__(
        self,
        columns: Optional[Dict[str, List[str]]] = None,
        fetchrow_result: Optional[Dict[str, Any]] = None,
        fail_on: Optional[str] = None,
        error: Optional[Exception] = None,
    ):
        self.columns = columns or {}
        self.fetchrow_result = fetchrow_result
        self.fail_on = fail_on
        self.error = error
        self.events: List[tuple] = []

    def transaction(self) -> FakeTransaction:
        return FakeTransaction(self)

    def _check(self, query: str) -> None:
        if self.fail_on and self.fail_on in query:
            raise self.error

    async def fetch(self, query: str, *args):
        self.events.append(("fetch", query, args))
        self._check(query)
        if "information_schema.columns" in query:
            return [{"column_name": name} for name in self.columns.get(args[0], [])]
        return []

    async def fetchrow(self, query: str, *args):
        self.events.append(("fetchrow", query, args))
        self._check(query)
        return self.fetchrow_result

    async def execute(self, query: str, *args):
        self.events.append(("execute", query, args))
        self._check(query)
        return "OK"

    async def executemany(self, query: str, args):
        rows = list(args)
        self.events.append(("executemany", query, rows))
        self._check(query)

    def statements(self, kind: str) -> List[tuple]:
        return [event for event in self.events if event[0] == kind]


class _Acquire:
    def __init__(self, conn: FakeConnection):
        self.conn = conn

    async def __aenter__(self) -> FakeConnection:
        return self.conn

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakePool:
    """Pool handing out a single FakeConnection."""

    def __init__(self, conn: Optional[FakeConnection] = None, close_error: Optional[Exception] = None):
        self.conn = conn or FakeConnection()
        self.close_error = close_error
        self.closed = False

    def acquire(self) -> _Acquire:
        return _Acquire(self.conn)

    async def close(self) -> None:
        if self.close_error is not None:
            raise self.close_error
        self.closed = True
