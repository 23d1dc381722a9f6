#!/usr/bin/env python3
"""
Tests for the purchase eligibility and pricing gate.
"""

import re
import unittest

from blockfest.errors import AlreadyOwnsTicket, EventInactive, MissingField, PriceMismatch
from blockfest.models import EventPrices, PurchaseIntent, Ticket
from blockfest.services.purchase_gate import (build_purchase_submission, check_eligibility,
                                              make_qr_token, resolve_price, submission_from_intent)

WALLET = "0x00000000000000000000000000000000000000a1"
PRICES = EventPrices(insider="0.0005", outsider="0.001")


class TestResolvePrice(unittest.TestCase):

    def test_vip_gets_insider_price(self):
        self.assertEqual(resolve_price(True, PRICES), "0.0005")

    def test_outsider_gets_outsider_price(self):
        self.assertEqual(resolve_price(False, PRICES), "0.001")


class TestCheckEligibility(unittest.TestCase):

    def test_vip_with_a_ticket_is_refused(self):
        with self.assertRaises(AlreadyOwnsTicket):
            check_eligibility(WALLET, True, [7], True)

    def test_inactive_event_checked_first(self):
        with self.assertRaises(EventInactive):
            check_eligibility(WALLET, False, [], False)
        with self.assertRaises(EventInactive):
            check_eligibility(WALLET, True, [7], False)

    def test_outsider_may_own_several(self):
        check_eligibility(WALLET, False, [1, 2, 3], True)

    def test_vip_without_tickets_passes(self):
        check_eligibility(WALLET, True, [], True)


class TestBuildPurchaseSubmission(unittest.TestCase):

    def setUp(self):
        self.ticket = Ticket(ticket_id=3, token_uri="ipfs://cid/3.json")

    def test_vip_submission(self):
        submission = build_purchase_submission(self.ticket, True, PRICES, "qr-3-1")
        self.assertEqual(submission.token_uri, "ipfs://cid/3.json")
        self.assertEqual(submission.qr_token, "qr-3-1")
        self.assertFalse(submission.outsider_flag)
        self.assertEqual(submission.value, "0.0005")

    def test_outsider_submission(self):
        submission = build_purchase_submission(self.ticket, False, PRICES, "qr-3-1")
        self.assertTrue(submission.outsider_flag)
        self.assertEqual(submission.value, "0.001")

    def test_missing_token_uri(self):
        with self.assertRaises(MissingField) as ctx:
            build_purchase_submission(Ticket(3, None), True, PRICES, "qr")
        self.assertEqual(ctx.exception.field, "tokenURI")

    def test_missing_qr_token(self):
        with self.assertRaises(MissingField) as ctx:
            build_purchase_submission(self.ticket, True, PRICES, "")
        self.assertEqual(ctx.exception.field, "qrToken")

    def test_missing_price(self):
        with self.assertRaises(MissingField) as ctx:
            build_purchase_submission(self.ticket, False, EventPrices("0.0005", None), "qr")
        self.assertEqual(ctx.exception.field, "price")

    def test_quoted_price_must_match_tier(self):
        with self.assertRaises(PriceMismatch):
            build_purchase_submission(self.ticket, True, PRICES, "qr", quoted_price="0.001")
        with self.assertRaises(PriceMismatch):
            build_purchase_submission(self.ticket, False, PRICES, "qr", quoted_price="0.0005")

    def test_matching_quote_passes(self):
        submission = build_purchase_submission(self.ticket, True, PRICES, "qr", quoted_price="0.0005")
        self.assertEqual(submission.value, "0.0005")

    def test_quote_compared_as_a_number(self):
        submission = build_purchase_submission(self.ticket, False, EventPrices("0.5", "1"), "qr",
                                               quoted_price="1.0")
        self.assertEqual(submission.value, "1")

        submission = build_purchase_submission(self.ticket, True, PRICES, "qr", quoted_price="0.00050")
        self.assertEqual(submission.value, "0.0005")

    def test_unparseable_quote_is_a_mismatch(self):
        with self.assertRaises(PriceMismatch):
            build_purchase_submission(self.ticket, True, PRICES, "qr", quoted_price="cheap")


class TestPurchaseIntent(unittest.TestCase):

    def _intent(self, **overrides):
        values = dict(ticket_id=3, token_uri="ipfs://cid/3.json", requester_wallet=WALLET,
                      is_vip=True, quoted_price="0.0005", qr_token="qr-3-1")
        values.update(overrides)
        return PurchaseIntent(**values)

    def test_valid_intent(self):
        submission = submission_from_intent(self._intent(), PRICES)
        self.assertFalse(submission.outsider_flag)

    def test_stale_quote_rejected(self):
        with self.assertRaises(PriceMismatch):
            submission_from_intent(self._intent(), EventPrices(insider="0.0006", outsider="0.001"))

    def test_missing_quote_rejected(self):
        with self.assertRaises(MissingField):
            submission_from_intent(self._intent(quoted_price=None), PRICES)


class TestQRToken(unittest.TestCase):

    def test_format(self):
        self.assertRegex(make_qr_token(12), re.compile(r"^qr-12-\d{13}$"))


if __name__ == "__main__":
    unittest.main()
