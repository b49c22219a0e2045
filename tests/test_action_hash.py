"""
Action hash tests: exact msgpack layout, nonce/vault suffix and digest properties.
"""

import copy
from collections import OrderedDict

import pytest
from eth_utils import keccak

from hlsign.errors import InvalidAddressError, InvalidNonceError
from hlsign.hl_canon import pack_action, to_plain
from hlsign.hl_l1_sign import action_hash, l1_hash_input

from tests.conftest import TEST_NONCE

ETH_ORDER_ACTION = {
    "type": "order",
    "orders": [{"a": 4, "b": True, "p": "3000.5", "s": "1.25", "r": False, "t": {"limit": {"tif": "Gtc"}}}],
    "grouping": "na",
}

# msgpack of ETH_ORDER_ACTION, assembled by hand, byte by byte
ETH_ORDER_PACKED_HEX = (
    "83"
    "a474797065" "a56f72646572"
    "a66f7264657273" "91"
    "86"
    "a161" "04"
    "a162" "c3"
    "a170" "a6333030302e35"
    "a173" "a4312e3235"
    "a172" "c2"
    "a174" "81" "a56c696d6974" "81" "a3746966" "a3477463"
    "a867726f7570696e67" "a26e61"
)

VAULT = "0x1719884eb866cb12b2287399b15f7db5e7d775ea"


@pytest.mark.deterministic
class TestCanonicalPacking:

    def test_eth_order_bytes(self):
        assert pack_action(ETH_ORDER_ACTION).hex() == ETH_ORDER_PACKED_HEX

    def test_ordered_dict_packs_like_dict(self):
        ordered = OrderedDict(ETH_ORDER_ACTION)
        assert pack_action(ordered) == pack_action(ETH_ORDER_ACTION)

    def test_key_order_is_significant(self):
        reordered = {"grouping": "na", "type": "order", "orders": ETH_ORDER_ACTION["orders"]}
        assert pack_action(reordered) != pack_action(ETH_ORDER_ACTION)

    def test_to_plain_converts_tuples_and_nested_mappings(self):
        assert to_plain(OrderedDict(a=(1, OrderedDict(b=2)))) == {"a": [1, {"b": 2}]}


@pytest.mark.deterministic
class TestHashInput:

    def test_no_vault_layout(self):
        packed = pack_action(ETH_ORDER_ACTION)
        data = l1_hash_input(ETH_ORDER_ACTION, None, TEST_NONCE)
        assert len(data) == len(packed) + 9
        assert data[:len(packed)] == packed
        assert data[len(packed):len(packed) + 8].hex() == "0000018bcfe56800"
        assert data[-1] == 0

    def test_vault_layout(self):
        packed = pack_action(ETH_ORDER_ACTION)
        data = l1_hash_input(ETH_ORDER_ACTION, VAULT, TEST_NONCE)
        assert len(data) == len(packed) + 29
        assert data[len(packed) + 8] == 1
        assert data[len(packed) + 9:] == bytes.fromhex(VAULT[2:])

    def test_digest_is_keccak_of_input(self):
        data = l1_hash_input(ETH_ORDER_ACTION, None, TEST_NONCE)
        assert action_hash(ETH_ORDER_ACTION, None, TEST_NONCE) == keccak(data)

    @pytest.mark.parametrize("nonce", [-1, 2 ** 64, 1.5, "1700000000000", True])
    def test_bad_nonce_raises(self, nonce):
        with pytest.raises(InvalidNonceError):
            l1_hash_input(ETH_ORDER_ACTION, None, nonce)

    def test_max_nonce_accepted(self):
        assert l1_hash_input(ETH_ORDER_ACTION, None, 2 ** 64 - 1)[-9:-1] == b"\xff" * 8

    @pytest.mark.parametrize("vault", ["0x1234", "0x" + "zz" * 20, "0x" + "11" * 21])
    def test_bad_vault_raises(self, vault):
        with pytest.raises(InvalidAddressError):
            l1_hash_input(ETH_ORDER_ACTION, vault, TEST_NONCE)


@pytest.mark.deterministic
class TestDigestProperties:

    def test_length_and_determinism(self):
        first = action_hash(ETH_ORDER_ACTION, None, TEST_NONCE)
        assert len(first) == 32
        for _ in range(5):
            assert action_hash(copy.deepcopy(ETH_ORDER_ACTION), None, TEST_NONCE) == first

    def test_vault_case_does_not_matter(self):
        assert action_hash(ETH_ORDER_ACTION, VAULT, TEST_NONCE) == action_hash(ETH_ORDER_ACTION, VAULT.upper().replace("0X", "0x"), TEST_NONCE)

    @pytest.mark.parametrize("path,value", [
        (("orders", 0, "a"), 5),
        (("orders", 0, "b"), False),
        (("orders", 0, "p"), "3000.6"),
        (("orders", 0, "s"), "1.26"),
        (("orders", 0, "r"), True),
        (("orders", 0, "t"), {"limit": {"tif": "Ioc"}}),
        (("grouping",), "normalTpsl"),
    ])
    def test_any_field_change_changes_digest(self, path, value):
        mutated = copy.deepcopy(ETH_ORDER_ACTION)
        target = mutated
        for key in path[:-1]:
            target = target[key]
        target[path[-1]] = value
        assert action_hash(mutated, None, TEST_NONCE) != action_hash(ETH_ORDER_ACTION, None, TEST_NONCE)

    def test_nonce_and_vault_change_digest(self):
        base = action_hash(ETH_ORDER_ACTION, None, TEST_NONCE)
        assert action_hash(ETH_ORDER_ACTION, None, TEST_NONCE + 1) != base
        assert action_hash(ETH_ORDER_ACTION, VAULT, TEST_NONCE) != base

    def test_input_not_mutated(self):
        snapshot = copy.deepcopy(ETH_ORDER_ACTION)
        action_hash(ETH_ORDER_ACTION, VAULT, TEST_NONCE)
        assert ETH_ORDER_ACTION == snapshot
