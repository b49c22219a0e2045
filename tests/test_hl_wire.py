"""
Wire encoder tests: order wires, order types and every action variant's shape.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from hlsign import hl_wire
from hlsign.action_schema import Builder, ModifyRequest, OrderRequest
from hlsign.errors import InvalidAddressError, InvalidOrderTypeError, PrecisionError

DEST = "0x5e9ee1089755c3435139848e47e6635505d5a13a"
CLOID = "0x00000000000000000000000000000001"


def eth_order(**overrides):
    data = {
        "coin": "ETH",
        "is_buy": True,
        "limit_px": 3000.5,
        "sz": 1.25,
        "reduce_only": False,
        "order_type": {"limit": {"tif": "Gtc"}},
    }
    data.update(overrides)
    return OrderRequest(**data)


@pytest.mark.deterministic
class TestOrderWire:

    def test_limit_order_wire(self):
        wire = hl_wire.order_to_wire(eth_order(), 4)
        assert wire == {"a": 4, "b": True, "p": "3000.5", "s": "1.25", "r": False, "t": {"limit": {"tif": "Gtc"}}}
        assert list(wire) == ["a", "b", "p", "s", "r", "t"]

    def test_cloid_appended_last(self):
        wire = hl_wire.order_to_wire(eth_order(cloid=CLOID), 4)
        assert list(wire) == ["a", "b", "p", "s", "r", "t", "c"]
        assert wire["c"] == CLOID

    def test_no_cloid_key_when_absent(self):
        assert "c" not in hl_wire.order_to_wire(eth_order(), 4)

    def test_decimal_and_string_inputs_agree(self):
        a = hl_wire.order_to_wire(eth_order(limit_px=Decimal("3000.50"), sz="1.250"), 4)
        b = hl_wire.order_to_wire(eth_order(), 4)
        assert a == b

    def test_unrepresentable_size_raises(self):
        with pytest.raises(PrecisionError):
            hl_wire.order_to_wire(eth_order(sz="0.123456789"), 4)

    def test_intent_is_immutable(self):
        order = eth_order()
        with pytest.raises(ValidationError):
            order.sz = 2

    def test_bad_cloid_rejected(self):
        with pytest.raises(ValidationError):
            eth_order(cloid="not-a-cloid")


@pytest.mark.deterministic
class TestOrderTypeToWire:

    def test_limit_passes_through(self):
        assert hl_wire.order_type_to_wire({"limit": {"tif": "Alo"}}) == {"limit": {"tif": "Alo"}}

    def test_trigger_canonicalizes_trigger_px(self):
        wire = hl_wire.order_type_to_wire({"trigger": {"triggerPx": 2900.10, "isMarket": True, "tpsl": "sl"}})
        assert wire == {"trigger": {"isMarket": True, "triggerPx": "2900.1", "tpsl": "sl"}}
        assert list(wire["trigger"]) == ["isMarket", "triggerPx", "tpsl"]

    @pytest.mark.parametrize("order_type", [
        {},
        {"market": {}},
        {"limit": None},
        {"trigger": {"isMarket": True, "tpsl": "tp"}},
        {"trigger": {"triggerPx": "1", "isMarket": True, "tpsl": "stop"}},
        {"trigger": {"triggerPx": "1", "tpsl": "sl"}},
        {"trigger": {"triggerPx": "1", "isMarket": 1, "tpsl": "tp"}},
        {"trigger": {"triggerPx": "1", "isMarket": "false", "tpsl": "tp"}},
        "limit",
        None,
    ])
    def test_invalid_shapes_raise(self, order_type):
        with pytest.raises(InvalidOrderTypeError):
            hl_wire.order_type_to_wire(order_type)


@pytest.mark.deterministic
class TestOrderAction:

    def test_order_action_shape(self):
        wire = hl_wire.order_to_wire(eth_order(), 4)
        action = hl_wire.order_wires_to_action([wire])
        assert action == {"type": "order", "orders": [wire], "grouping": "na"}
        assert "builder" not in action

    def test_builder_included_when_present(self):
        builder = Builder(b="0xABCDEFabcdefABCDEFabcdefABCDEFabcdefABCD", f=10)
        action = hl_wire.order_wires_to_action([], "normalTpsl", builder)
        assert list(action) == ["type", "orders", "grouping", "builder"]
        assert action["builder"] == {"b": "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd", "f": 10}

    def test_unknown_grouping_raises(self):
        with pytest.raises(InvalidOrderTypeError):
            hl_wire.order_wires_to_action([], "bogus")

    def test_orders_to_action_uses_indices(self):
        orders = [eth_order(), eth_order(coin="BTC", limit_px=60000, sz="0.001")]
        action = hl_wire.orders_to_action(orders, {"ETH": 4, "BTC": 0})
        assert [o["a"] for o in action["orders"]] == [4, 0]
        assert action["orders"][1]["p"] == "60000"


@pytest.mark.deterministic
class TestActionVariants:

    def test_cancel(self):
        assert hl_wire.cancel_action([(4, 123), (0, 456)]) == {
            "type": "cancel", "cancels": [{"a": 4, "o": 123}, {"a": 0, "o": 456}],
        }

    def test_cancel_by_cloid(self):
        assert hl_wire.cancel_by_cloid_action([(4, CLOID)]) == {
            "type": "cancelByCloid", "cancels": [{"asset": 4, "cloid": CLOID}],
        }

    def test_modify_and_batch_modify(self):
        wire = hl_wire.order_to_wire(eth_order(), 4)
        assert hl_wire.modify_action(77, wire) == {"type": "modify", "oid": 77, "order": wire}
        assert hl_wire.batch_modify_action([(77, wire), (CLOID, wire)]) == {
            "type": "batchModify",
            "modifies": [{"oid": 77, "order": wire}, {"oid": CLOID, "order": wire}],
        }

    def test_modify_request_rejects_non_cloid_string(self):
        with pytest.raises(ValidationError):
            ModifyRequest(oid="abc", order=eth_order())

    def test_update_leverage(self):
        action = hl_wire.update_leverage_action(4, False, 10)
        assert action == {"type": "updateLeverage", "asset": 4, "isCross": False, "leverage": 10}

    def test_update_isolated_margin_scales_to_micro_usd(self):
        action = hl_wire.update_isolated_margin_action(4, True, "12.5")
        assert action == {"type": "updateIsolatedMargin", "asset": 4, "isBuy": True, "ntli": 12_500_000}

    def test_user_transfers(self):
        assert hl_wire.usd_send_action(DEST, 100, 1) == {
            "type": "usdSend", "destination": DEST, "amount": "100", "time": 1,
        }
        assert hl_wire.spot_send_action(DEST, "PURR:0xc1fb593aeffbeb02f85e0308e9956a90", "2.50", 1)["amount"] == "2.5"
        assert hl_wire.withdraw_action(DEST, 5.0, 1)["type"] == "withdraw3"

    def test_invalid_destination_raises(self):
        with pytest.raises(InvalidAddressError):
            hl_wire.usd_send_action("0x1234", 1, 1)

    def test_approvals(self):
        agent = hl_wire.approve_agent_action("0x" + "AB" * 20, None, 9)
        assert agent == {"type": "approveAgent", "agentAddress": "0x" + "ab" * 20, "agentName": "", "nonce": 9}
        fee = hl_wire.approve_builder_fee_action("0x" + "cd" * 20, "0.001%", 9)
        assert fee == {"type": "approveBuilderFee", "maxFeeRate": "0.001%", "builder": "0x" + "cd" * 20, "nonce": 9}

    def test_schedule_cancel_omits_absent_time(self):
        assert hl_wire.schedule_cancel_action() == {"type": "scheduleCancel"}
        assert hl_wire.schedule_cancel_action(1700000060000) == {"type": "scheduleCancel", "time": 1700000060000}

    def test_vault_transfer_and_class_transfer(self):
        assert hl_wire.vault_transfer_action(DEST, True, 25) == {
            "type": "vaultTransfer", "vaultAddress": DEST, "isDeposit": True, "usd": 25_000_000,
        }
        assert hl_wire.class_transfer_action("1.5", True) == {
            "type": "spotUser", "classTransfer": {"usdc": 1_500_000, "toPerp": True},
        }

    def test_set_referrer(self):
        assert hl_wire.set_referrer_action("CODE") == {"type": "setReferrer", "code": "CODE"}
