import importlib


def test_pool_checkout_retries_on_stale_connection(monkeypatch):
    import roster.datastore_pg as pg
    pg = importlib.reload(pg)

    # Fake cursor/connection/pool to simulate first checkout failure then success
    class BadCursor:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def execute(self, sql, params=None):  # pragma: no cover - exercised via _get_conn
            from psycopg2 import OperationalError

            raise OperationalError("SSL connection has been closed unexpectedly")

    class GoodCursor:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def execute(self, sql, params=None):
            return None

    class FakeConn:
        autocommit = False
        closed = 0
        status = 0
        cursor_cls = GoodCursor

        def cursor(self, cursor_factory=None):
            return self.cursor_cls()

        def rollback(self):
            pass

        def close(self):
            self.closed = 1

    class BadConn(FakeConn):
        cursor_cls = BadCursor

    class GoodConn(FakeConn):
        pass

    class FakePool:
        def __init__(self, fail_times):
            self.fail_times = fail_times
            self.calls_get = 0
            self.calls_put = []

        def getconn(self):
            self.calls_get += 1
            if self.calls_get <= self.fail_times:
                return BadConn()
            return GoodConn()

        def putconn(self, conn, close=False):
            self.calls_put.append((conn, close))
            if close:
                conn.close()

    pool = FakePool(fail_times=1)
    monkeypatch.setattr(pg, "_POOL", pool)

    with pg._get_conn() as conn:
        assert isinstance(conn, GoodConn)

    assert pool.calls_get == 2
    assert pool.calls_put[0][1] is True
    # Healthy connection handed back without closing
    assert isinstance(pool.calls_put[-1][0], GoodConn)
    assert pool.calls_put[-1][1] is False


def test_pool_checkout_gives_up_after_second_failure(monkeypatch):
    import psycopg2
    import roster.datastore_pg as pg
    pg = importlib.reload(pg)

    class BadConn:
        autocommit = False

        def cursor(self, cursor_factory=None):
            raise psycopg2.InterfaceError("connection already closed")

    class FakePool:
        def __init__(self):
            self.closed = 0

        def getconn(self):
            return BadConn()

        def putconn(self, conn, close=False):
            self.closed += int(close)

    pool = FakePool()
    monkeypatch.setattr(pg, "_POOL", pool)

    try:
        with pg._get_conn():
            raise AssertionError("should not yield a connection")
    except psycopg2.OperationalError as e:
        assert "after retry" in str(e)
    assert pool.closed == 2


def test_error_inside_block_rolls_back_and_returns_connection(monkeypatch):
    import roster.datastore_pg as pg
    pg = importlib.reload(pg)

    class Cursor:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def execute(self, sql, params=None):
            return None

    class Conn:
        autocommit = False
        closed = 0

        def __init__(self):
            self.rollbacks = 0

        def cursor(self, cursor_factory=None):
            return Cursor()

        def rollback(self):
            self.rollbacks += 1

    conn = Conn()

    class FakePool:
        def __init__(self):
            self.returned = []

        def getconn(self):
            return conn

        def putconn(self, c, close=False):
            self.returned.append((c, close))

    pool = FakePool()
    monkeypatch.setattr(pg, "_POOL", pool)

    try:
        with pg._get_conn():
            raise ValueError("boom")
    except ValueError:
        pass
    # one rollback after the ping, one for the failed block
    assert conn.rollbacks == 2
    assert pool.returned == [(conn, False)]
