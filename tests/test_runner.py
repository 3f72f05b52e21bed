"""
End-to-end tests for the runner and the command line.
Tests: sync -> replay -> reconcile pipeline, queries, stats, exit codes, config.
"""
import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

from ledger_audit.__main__ import EXIT_DISCREPANCIES, EXIT_ERROR, EXIT_OK, main
from ledger_audit.core.codec import TransactionCodec
from ledger_audit.core.config import AuditConfig
from ledger_audit.core.errors import StatsCheckFailed, UpstreamUnavailable
from ledger_audit.core.history_store import HistoryStore
from ledger_audit.core.identity import Principal
from ledger_audit.core.types import Burn, Mint, Transfer, TransactionEvent
from ledger_audit.recon.snapshot_cache import FileSnapshotCache
from ledger_audit.remote.memory_source import InMemoryHistorySource
from ledger_audit.runner import AuditRunner

A = Principal(b"\x0a")
B = Principal(b"\x0b")
C = Principal(b"\x0c")
XTC = 10 ** 12

HISTORY = [
    TransactionEvent(index=0, fee=0, cycles=100, timestamp=1, kind=Mint(to=A)),
    TransactionEvent(index=1, fee=1, cycles=40, timestamp=2, kind=Transfer(to=B, from_=A)),
    TransactionEvent(index=2, fee=1, cycles=10, timestamp=3, kind=Burn(to=C, from_=A)),
]


class RunnerTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config = AuditConfig(
            backup_dir=os.path.join(self._tmp.name, "backup"),
            snapshot_dir=os.path.join(self._tmp.name, "snapshot"),
        )

    def tearDown(self):
        self._tmp.cleanup()


class TestAuditRunner(RunnerTestCase):
    def setUp(self):
        super().setUp()
        self.source = InMemoryHistorySource(
            HISTORY, balances={A: 48, B: 40}, reserve=10 * XTC, supply=138,
        )
        self.runner = AuditRunner(self.config, source=self.source)

    def test_sync_replay_reconcile(self):
        report = self.runner.sync()
        self.assertTrue(report.complete)

        result = self.runner.replay()
        self.assertEqual(result.ledger, {A: 48, B: 40})
        self.assertEqual(result.last_index, 2)

        verdict = self.runner.reconcile()
        self.assertTrue(verdict.is_verified())
        self.assertEqual(verdict.refreshed, {A, B})
        self.assertEqual(FileSnapshotCache(self.config.snapshot_dir).load(), {A: 48, B: 40})

    def test_reconcile_reports_genuine_discrepancy(self):
        self.runner.sync()
        self.source.balances[A] = 50
        verdict = self.runner.reconcile()
        self.assertEqual(verdict.mismatches, {A})
        self.assertEqual(verdict.discrepancies[A].delta, -2)

    def test_replay_does_not_touch_network(self):
        self.runner.sync()
        self.source.fetched.clear()
        self.runner.replay()
        self.assertEqual(self.source.fetched, [])
        self.assertEqual(self.source.balance_calls, [])

    def test_cycles_only_policy_from_config(self):
        config = AuditConfig(backup_dir=self.config.backup_dir, debit_policy="cycles_only")
        self.runner.sync()
        self.assertEqual(AuditRunner(config).replay().ledger, {A: 50, B: 40})

    def test_user_history(self):
        self.runner.sync()
        self.assertEqual([e.index for e in self.runner.user_history(B)], [1])
        self.assertEqual([e.index for e in self.runner.user_history(C)], [2])

    def test_whales(self):
        self.runner.sync()
        self.assertEqual(self.runner.whales(threshold=45), [(A, 48)])
        self.assertEqual(self.runner.whales(), [])

    def test_check_stats(self):
        self.runner.sync()
        self.assertEqual(self.runner.check_stats().history_events, 3)

        self.source.supply = 20 * XTC
        with self.assertRaises(StatsCheckFailed):
            self.runner.check_stats()

    def test_no_source_configured(self):
        runner = AuditRunner(self.config)
        with self.assertRaises(UpstreamUnavailable):
            runner.sync()


class TestCommandLine(RunnerTestCase):
    def run_cli(self, *args):
        argv = ["--backup-dir", self.config.backup_dir, "--snapshot-dir", self.config.snapshot_dir, *args]
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(argv)
        return code, out.getvalue()

    def seed_store(self):
        store = HistoryStore(self.config.backup_dir)
        codec = TransactionCodec()
        for event in HISTORY:
            store.put(event.index, codec.encode(event))

    def test_replay_prints_balances(self):
        self.seed_store()
        code, out = self.run_cli("replay")
        self.assertEqual(code, EXIT_OK)
        self.assertIn(f"{A.to_text()} 48", out)
        self.assertIn("Digest:", out)

    def test_reconcile_without_source_reports_discrepancies(self):
        self.seed_store()
        code, out = self.run_cli("reconcile")
        self.assertEqual(code, EXIT_DISCREPANCIES)
        self.assertIn("Differences 2", out)

    def test_reconcile_verified_from_snapshot(self):
        self.seed_store()
        snapshot = FileSnapshotCache(self.config.snapshot_dir)
        snapshot.put(A, 48)
        snapshot.put(B, 40)
        code, out = self.run_cli("reconcile")
        self.assertEqual(code, EXIT_OK)
        self.assertIn("All balances verified based on backup", out)

    def test_sync_without_source_is_error(self):
        code, out = self.run_cli("sync")
        self.assertEqual(code, EXIT_ERROR)
        self.assertIn("Nothing stored yet", out)

    def test_invalid_principal_is_error(self):
        code, _ = self.run_cli("user-history", "not-a-principal")
        self.assertEqual(code, EXIT_ERROR)

    def test_bad_environment_is_error(self):
        for name, value in (("LEDGER_AUDIT_DEBIT_POLICY", "bogus"), ("LEDGER_AUDIT_REQUEST_TIMEOUT", "soon")):
            with self.subTest(name=name), patch.dict(os.environ, {name: value}):
                code, _ = self.run_cli("replay")
                self.assertEqual(code, EXIT_ERROR)


class TestAuditConfig(unittest.TestCase):
    def test_env_then_overrides(self):
        environ = {
            "LEDGER_AUDIT_BACKUP_DIR": "/data/backup",
            "LEDGER_AUDIT_REQUEST_TIMEOUT": "5",
            "LEDGER_AUDIT_DEBIT_POLICY": "cycles_only",
        }
        config = AuditConfig.from_env(environ, debit_policy="cycles_plus_fee", redis_url=None)
        self.assertEqual(config.backup_dir, "/data/backup")
        self.assertEqual(config.request_timeout, 5.0)
        self.assertEqual(config.debit_policy, "cycles_plus_fee")
        self.assertIsNone(config.redis_url)

    def test_config_hash(self):
        self.assertEqual(AuditConfig().config_hash, AuditConfig.from_env({}).config_hash)
        self.assertNotEqual(AuditConfig().config_hash, AuditConfig(backup_dir="elsewhere").config_hash)


if __name__ == '__main__':
    unittest.main()
