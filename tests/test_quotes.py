import unittest
from decimal import Decimal

import requests

from jupiter_poller.jupiter import JupiterClient
from jupiter_poller.models import QuoteStatus, Token
from jupiter_poller.quotes import QuoteRequester, slippage_to_bps, to_base_units

from tests.fakes import TOKEN_X, FakeAggregator, FakeHttp, http_error, make_route


class BaseUnitTests(unittest.TestCase):
    def test_converts_across_precisions(self) -> None:
        cases = [
            (5, 0, 5),
            (5, 6, 5_000_000),
            (5, 9, 5_000_000_000),
            (1.25, 6, 1_250_000),
            (0.1, 9, 100_000_000),
            (Decimal("0.000001"), 6, 1),
            ("3.7", 0, 4),
        ]
        for amount, decimals, expected in cases:
            with self.subTest(amount=amount, decimals=decimals):
                self.assertEqual(to_base_units(amount, decimals), expected)

    def test_rounds_to_nearest(self) -> None:
        self.assertEqual(to_base_units(0.0000014, 6), 1)
        self.assertEqual(to_base_units(0.0000016, 6), 2)
        self.assertEqual(to_base_units(2.5, 0), 3)

    def test_slippage_percent_to_bps(self) -> None:
        self.assertEqual(slippage_to_bps(0), 0)
        self.assertEqual(slippage_to_bps(1), 100)
        self.assertEqual(slippage_to_bps(Decimal("0.5")), 50)


class QuoteRequesterTests(unittest.TestCase):
    def test_missing_tokens_yield_no_route_without_calling_aggregator(self) -> None:
        aggregator = FakeAggregator([[make_route(1)]])
        requester = QuoteRequester(aggregator)

        for input_token, output_token in ((None, TOKEN_X), (TOKEN_X, None), (None, None)):
            result = requester.request(input_token, output_token, 5, 0)
            self.assertEqual(result.status, QuoteStatus.NO_ROUTE)
            self.assertFalse(result.has_route)

        self.assertEqual(aggregator.quote_calls, [])

    def test_found_routes_carry_best_quote(self) -> None:
        usdt = Token(address="USDT", symbol="USDT", decimals=6)
        aggregator = FakeAggregator([[make_route(4_990_000, out_amount=5_010_000), make_route(4_000_000, out_amount=4_100_000)]])

        result = QuoteRequester(aggregator).request(TOKEN_X, usdt, 5, Decimal("0.5"))

        self.assertEqual(result.status, QuoteStatus.FOUND)
        self.assertEqual(len(result.routes), 2)
        self.assertEqual(result.best.out_amount, 5_010_000)
        self.assertEqual(result.best_quote, Decimal("5.01"))
        call = aggregator.quote_calls[0]
        self.assertEqual(call["amount"], 5_000_000)
        self.assertEqual(call["slippage_bps"], 50)
        self.assertTrue(call["force_fetch"])
        self.assertFalse(call["only_direct_routes"])

    def test_empty_route_list_is_no_route(self) -> None:
        result = QuoteRequester(FakeAggregator([[]])).request(TOKEN_X, TOKEN_X, 5, 0)
        self.assertEqual(result.status, QuoteStatus.NO_ROUTE)

    def test_connection_errors_are_transient(self) -> None:
        result = QuoteRequester(FakeAggregator([requests.ConnectionError("reset")])).request(TOKEN_X, TOKEN_X, 5, 0)
        self.assertEqual(result.status, QuoteStatus.TRANSIENT_FAILURE)
        self.assertIn("reset", result.error)

    def test_server_errors_are_transient(self) -> None:
        result = QuoteRequester(FakeAggregator([http_error(503)])).request(TOKEN_X, TOKEN_X, 5, 0)
        self.assertEqual(result.status, QuoteStatus.TRANSIENT_FAILURE)

    def test_client_errors_are_permanent(self) -> None:
        result = QuoteRequester(FakeAggregator([http_error(400, b'{"error": "bad mint"}')])).request(TOKEN_X, TOKEN_X, 5, 0)
        self.assertEqual(result.status, QuoteStatus.PERMANENT_FAILURE)

    def test_no_route_error_code_is_no_route(self) -> None:
        error = http_error(400, b'{"error": "Could not find any route", "errorCode": "COULD_NOT_FIND_ANY_ROUTE"}')
        result = QuoteRequester(FakeAggregator([error])).request(TOKEN_X, TOKEN_X, 5, 0)
        self.assertEqual(result.status, QuoteStatus.NO_ROUTE)

    def test_malformed_payload_is_permanent(self) -> None:
        result = QuoteRequester(FakeAggregator([ValueError("missing outAmount")])).request(TOKEN_X, TOKEN_X, 5, 0)
        self.assertEqual(result.status, QuoteStatus.PERMANENT_FAILURE)


class MalformedQuoteBodyTests(unittest.TestCase):
    def request_with_body(self, body):
        client = JupiterClient(FakeHttp({"/quote": body}), "https://jup")
        return QuoteRequester(client).request(TOKEN_X, TOKEN_X, 5, 0)

    def test_malformed_bodies_are_permanent_failures(self) -> None:
        quote = {"inAmount": "5000000", "outAmount": "5000000"}
        bodies = [
            {"data": [None]},
            {"data": "x"},
            {**quote, "routePlan": [{"swapInfo": None}]},
            {**quote, "routePlan": [None]},
            {**quote, "routePlan": "amm-1"},
            {**quote, "marketInfos": ["m1"]},
            "not a quote",
        ]
        for body in bodies:
            with self.subTest(body=body):
                result = self.request_with_body(body)
                self.assertEqual(result.status, QuoteStatus.PERMANENT_FAILURE)
                self.assertFalse(result.has_route)

    def test_well_formed_body_still_parses(self) -> None:
        body = {
            "inAmount": "5000000",
            "outAmount": "5050000",
            "otherAmountThreshold": "5040000",
            "routePlan": [{"swapInfo": {"ammKey": "amm-1"}}],
        }

        result = self.request_with_body(body)

        self.assertEqual(result.status, QuoteStatus.FOUND)
        self.assertEqual(result.best.route_id, "amm-1")


if __name__ == "__main__":
    unittest.main()
