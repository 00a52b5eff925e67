"""Tests for the DynamoDB helpers in shared.db."""

from decimal import Decimal

from shared.db import build_update_expression, plain, to_dynamo


class TestBuildUpdateExpression:
    def test_set_only(self):
        expr, names, values = build_update_expression({"nickname": "dj", "collection": "LISTENER"})
        assert expr == "SET #k0 = :v0, #k1 = :v1"
        assert names == {"#k0": "nickname", "#k1": "collection"}
        assert values == {":v0": "dj", ":v1": "LISTENER"}

    def test_set_add_and_if_missing(self):
        expr, names, values = build_update_expression(
            {"lastSeen": "t"},
            add={"totalSeconds": 60},
            if_missing={"createdAt": "t"},
        )
        assert expr == "SET #k0 = :v0, #m0 = if_not_exists(#m0, :m0) ADD #a0 :a0"
        assert names == {"#k0": "lastSeen", "#m0": "createdAt", "#a0": "totalSeconds"}
        assert values[":a0"] == 60


def test_plain_converts_decimals():
    item = {"totalSeconds": Decimal("3601"), "metadata": {"ratio": Decimal("0.5")}, "tags": [Decimal("2")]}
    assert plain(item) == {"totalSeconds": 3601, "metadata": {"ratio": 0.5}, "tags": [2]}
    assert plain(None) is None


def test_to_dynamo_converts_floats():
    assert to_dynamo({"ratio": 0.5, "count": 3}) == {"ratio": Decimal("0.5"), "count": 3}
