import os
import sys
import unittest
from unittest.mock import MagicMock

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cluster.registry import HEARTBEAT_SQL, UPSERT_DNA_SQL, NodeRegistry


class TestNodeRegistry(unittest.TestCase):

    def setUp(self):
        self.connection = MagicMock()
        self.cursor = self.connection.cursor.return_value.__enter__.return_value
        self.registry = NodeRegistry(self.connection)

    def test_connect_requires_ssl_and_autocommit(self):
        connect = MagicMock(return_value=self.connection)
        registry = NodeRegistry.connect("postgresql://u:p@host/db", connect=connect)
        connect.assert_called_once_with("postgresql://u:p@host/db", sslmode="require")
        self.assertTrue(registry.connection.autocommit)

    def test_connect_keeps_explicit_sslmode(self):
        connect = MagicMock(return_value=self.connection)
        NodeRegistry.connect("postgresql://h/db?sslmode=disable", connect=connect)
        connect.assert_called_once_with("postgresql://h/db?sslmode=disable")

    def test_connect_without_dsn_defers_to_libpq_environment(self):
        connect = MagicMock(return_value=self.connection)
        NodeRegistry.connect(None, connect=connect)
        connect.assert_called_once_with(None)

    def test_heartbeat(self):
        self.registry.heartbeat("SWARM-NODE-0000001")
        self.cursor.execute.assert_called_once_with(HEARTBEAT_SQL, ("SWARM-NODE-0000001",))

    def test_upsert_dna_appends_on_conflict(self):
        self.registry.upsert_dna("gen-1", "payload", "UPGRADING")
        self.cursor.execute.assert_called_once_with(UPSERT_DNA_SQL, ("gen-1", "payload", "UPGRADING"))
        self.assertIn("neural_dna.thought_process ||", UPSERT_DNA_SQL)
        self.assertIn("ON CONFLICT (gen_id)", UPSERT_DNA_SQL)

    def test_close_is_idempotent(self):
        self.registry.close()
        self.registry.close()
        self.connection.close.assert_called_once()

    def test_context_manager_closes_on_error(self):
        with self.assertRaises(RuntimeError):
            with self.registry:
                raise RuntimeError("mid-cycle")
        self.connection.close.assert_called_once()


if __name__ == '__main__':
    unittest.main()
