import os
import sys
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import cluster_sync
from cluster.config import ConfigError, Settings
from cluster.cycle import CycleReport
from cluster.propagation import PropagationResult


class TestMain(unittest.TestCase):

    def setUp(self):
        patcher = patch("cluster_sync.setup_global_logging")
        self.addCleanup(patcher.stop)
        patcher.start()

    @patch("cluster_sync.load_settings", side_effect=ConfigError("FIREBASE_KEY is not valid JSON"))
    def test_fatal_config_exits_one(self, mock_load):
        self.assertEqual(cluster_sync.main([]), 1)

    @patch("cluster_sync.init_firestore", side_effect=ConfigError("Firebase credentials rejected"))
    @patch("cluster_sync.load_settings", return_value=Settings())
    def test_firebase_failure_is_fatal(self, mock_load, mock_init):
        self.assertEqual(cluster_sync.main([]), 1)

    @patch("cluster_sync.render_report")
    @patch("cluster_sync.run_cycle")
    @patch("cluster_sync.build_dependencies")
    @patch("cluster_sync.load_settings", return_value=Settings(node_name="n"))
    def test_cycle_failure_still_exits_zero(self, mock_load, mock_build, mock_run, mock_render):
        mock_run.return_value = CycleReport(node="n", error="RuntimeError: boom")
        self.assertEqual(cluster_sync.main(["--no-propagate", "--max-slots", "3"]), 0)
        settings = mock_run.call_args.args[0]
        self.assertEqual(settings.max_slots, 3)
        self.assertEqual(mock_run.call_args.kwargs, {"propagate": False})

    @patch("cluster_sync.init_firestore")
    @patch("cluster_sync.load_settings",
           return_value=Settings(supabase_url="xyz.supabase.co", supabase_key="k"))
    def test_bad_supabase_url_is_fatal(self, mock_load, mock_init):
        with self.assertLogs(level="CRITICAL") as logs:
            self.assertEqual(cluster_sync.main([]), 1)
        self.assertIn("Supabase credentials rejected", logs.output[0])

    @patch("cluster_sync.render_report")
    @patch("cluster_sync.run_cycle")
    @patch("cluster_sync.build_dependencies")
    @patch("cluster_sync.requests.Session")
    @patch("cluster_sync.load_settings", return_value=Settings(node_name="n"))
    def test_http_session_closed_after_cycle(self, mock_load, mock_session_cls, mock_build, mock_run, mock_render):
        mock_run.return_value = CycleReport(node="n")
        self.assertEqual(cluster_sync.main([]), 0)
        session = mock_session_cls.return_value.__enter__.return_value
        self.assertIs(mock_build.call_args.args[1], session)
        mock_session_cls.return_value.__exit__.assert_called_once()

    @patch("cluster_sync.load_settings", return_value=Settings())
    def test_non_positive_max_slots_is_fatal(self, mock_load):
        self.assertEqual(cluster_sync.main(["--max-slots", "0"]), 1)


class TestBuildDependencies(unittest.TestCase):

    @patch("cluster_sync.create_row_store")
    @patch("cluster_sync.init_firestore")
    def test_wires_collaborators(self, mock_init, mock_row_store):
        settings = Settings(github_token="gh", database_url="postgresql://h/db",
                            supabase_url="https://x.supabase.co", supabase_key="k",
                            firebase_credentials={"type": "service_account"}, http_timeout=9)
        deps = cluster_sync.build_dependencies(settings, MagicMock())
        self.assertEqual(deps.hosting.timeout, 9)
        self.assertIs(deps.status_db, mock_init.return_value)
        mock_row_store.assert_called_once_with("https://x.supabase.co", "k")
        self.assertEqual(deps.connect_registry.args, ("postgresql://h/db",))

    @patch("cluster_sync.create_row_store")
    @patch("cluster_sync.init_firestore")
    def test_row_store_optional(self, mock_init, mock_row_store):
        deps = cluster_sync.build_dependencies(Settings(firebase_credentials={}), MagicMock())
        self.assertIsNone(deps.row_store)
        mock_row_store.assert_not_called()


class TestRenderReport(unittest.TestCase):

    @patch("cluster_sync.console")
    def test_renders_spawn_summary(self, mock_console):
        report = CycleReport(node="n", latency_ms=10, api_remaining=5, domain="Nanotechnology",
                             propagation=PropagationResult(spawned="swarm-node-0000002", spawned_owner="o",
                                                           created_under="org", copied=["a", "b", "c"]))
        cluster_sync.render_report(report)
        panel = mock_console.print.call_args.args[0]
        self.assertIn("spawned o/swarm-node-0000002 via org", panel.renderable)


if __name__ == '__main__':
    unittest.main()
