#!/usr/bin/env python3
"""
Tests for the CLI: offline VIP commands, and transaction commands with the marketplace patched out.
"""

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from click.testing import CliRunner

from blockfest.cli import main
from blockfest.errors import AlreadyOwnsTicket, LedgerRejected, LedgerTimeout
from blockfest.models import TransactionResult, VIPStatus


class TestVIPCommands(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "insiderLists.csv"
        self.path.write_text("Name,RollNumber,WalletAddress\nAda,001,0xAAA\nGrace,002,0xBBB\nbad,row\n",
                             encoding="utf-8")
        self.runner = CliRunner()

    def tearDown(self):
        self.tmp.cleanup()

    def test_lookup_found(self):
        result = self.runner.invoke(main, ["vip-lookup", "ADA", "001", "0xaaa", "--file", str(self.path)])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("VIP: 0xAAA", result.output)

    def test_lookup_not_found(self):
        result = self.runner.invoke(main, ["vip-lookup", "Ada", "002", "0xAAA", "--file", str(self.path)])
        self.assertEqual(result.exit_code, 2)

    def test_lookup_missing_file(self):
        missing = str(Path(self.tmp.name) / "missing.csv")
        result = self.runner.invoke(main, ["vip-lookup", "Ada", "001", "0xAAA", "--file", missing])
        self.assertEqual(result.exit_code, 1)

    def test_list_reports_skipped_rows(self):
        result = self.runner.invoke(main, ["vip-list", "--file", str(self.path)])
        self.assertEqual(result.exit_code, 0)
        body = json.loads(result.stdout)
        self.assertEqual(body["count"], 2)
        self.assertEqual(body["skipped"], [{"line": 4, "content": "bad,row", "reason": "expected 3 fields, got 2"}])

    def test_list_filter(self):
        result = self.runner.invoke(main, ["vip-list", "--file", str(self.path), "--roll", "002"])
        self.assertEqual([e["name"] for e in json.loads(result.stdout)["entries"]], ["Grace"])


class TestTransactionCommands(unittest.TestCase):

    def setUp(self):
        self.runner = CliRunner()
        self.client = mock.Mock()
        patcher = mock.patch("blockfest.cli._marketplace", return_value=self.client)
        self.marketplace = patcher.start()
        self.addCleanup(patcher.stop)

    def test_buy_success(self):
        self.client.buy_ticket.return_value = TransactionResult(tx_hash="0xabc", block_number=7)
        result = self.runner.invoke(main, ["buy", "3", "--price", "0.001"])

        self.assertEqual(result.exit_code, 0)
        self.assertIn("0xabc", result.stdout)
        self.client.buy_ticket.assert_called_with(3, VIPStatus(is_vip=False), quoted_price="0.001")

    def test_buy_with_vip_check(self):
        self.client.writer.address = "0xAAA"
        self.client.check_vip.return_value = VIPStatus(True, "0xAAA")
        self.client.buy_ticket.return_value = TransactionResult(tx_hash="0xabc", block_number=7)
        result = self.runner.invoke(main, ["buy", "3", "--name", "Ada", "--roll", "001", "--token", "t"])

        self.assertEqual(result.exit_code, 0)
        self.client.check_vip.assert_called_with("Ada", "001", "0xAAA")
        self.client.buy_ticket.assert_called_with(3, VIPStatus(True, "0xAAA"), quoted_price=None)

    def test_buy_rejected(self):
        self.client.buy_ticket.side_effect = LedgerRejected("execution reverted: Sold out")
        result = self.runner.invoke(main, ["buy", "3"])
        self.assertEqual(result.exit_code, 1)

    def test_buy_gate_failure(self):
        self.client.buy_ticket.side_effect = AlreadyOwnsTicket()
        result = self.runner.invoke(main, ["buy", "3"])
        self.assertEqual(result.exit_code, 1)

    def test_buy_timeout_is_unknown_outcome(self):
        self.client.buy_ticket.side_effect = LedgerTimeout("not confirmed", tx_hash="0xabc")
        result = self.runner.invoke(main, ["buy", "3"])
        self.assertEqual(result.exit_code, 3)

    def test_resell(self):
        self.client.resell_ticket.return_value = TransactionResult(tx_hash="0xdef", block_number=8)
        result = self.runner.invoke(main, ["resell", "4"])
        self.assertEqual(result.exit_code, 0)
        self.client.resell_ticket.assert_called_with(4)

    def test_resell_rejected(self):
        self.client.resell_ticket.side_effect = LedgerRejected("execution reverted: Not owner")
        self.assertEqual(self.runner.invoke(main, ["resell", "4"]).exit_code, 1)

    def test_resell_timeout(self):
        self.client.resell_ticket.side_effect = LedgerTimeout("not confirmed")
        self.assertEqual(self.runner.invoke(main, ["resell", "4"]).exit_code, 3)


if __name__ == "__main__":
    unittest.main()
