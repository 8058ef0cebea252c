"""
Node registry on a Postgres-compatible database (Neon in production).
"""
import psycopg2

from cluster.logging import log_event

HEARTBEAT_SQL = """
    INSERT INTO node_registry (node_id, status, last_seen)
    VALUES (%s, 'ACTIVE', NOW())
    ON CONFLICT (node_id) DO UPDATE SET last_seen = NOW(), status = 'ACTIVE';
"""

# Payloads accumulate: a conflicting gen_id appends to the stored text.
UPSERT_DNA_SQL = """
    INSERT INTO neural_dna (gen_id, thought_process, status, timestamp)
    VALUES (%s, %s, %s, EXTRACT(EPOCH FROM NOW()))
    ON CONFLICT (gen_id) DO UPDATE SET
        thought_process = neural_dna.thought_process || E'\\n' || EXCLUDED.thought_process;
"""


class NodeRegistry:
    """
    Wraps one database connection for the duration of a cycle. Autocommit is
    on, so every statement is committed on its own.
    """
    def __init__(self, connection):
        self.connection = connection
        self.closed = False

    @classmethod
    def connect(cls, dsn, connect=psycopg2.connect):
        kwargs = {}
        # No DSN means libpq reads the PG* environment variables.
        if dsn and "sslmode" not in dsn:
            kwargs["sslmode"] = "require"
        connection = connect(dsn, **kwargs)
        connection.autocommit = True
        log_event("Registry database connected.", level="INFO")
        return cls(connection)

    def _execute(self, sql, params):
        with self.connection.cursor() as cursor:
            cursor.execute(sql, params)

    def heartbeat(self, node_id):
        self._execute(HEARTBEAT_SQL, (node_id,))
        log_event(f"Heartbeat recorded for {node_id}", level="DEBUG")

    def upsert_dna(self, gen_id, payload, status):
        self._execute(UPSERT_DNA_SQL, (gen_id, payload, status))

    def close(self):
        if self.closed:
            return
        self.closed = True
        self.connection.close()
        log_event("Registry database connection closed.", level="DEBUG")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
