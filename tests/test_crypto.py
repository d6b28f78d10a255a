import os

import pytest

from daybreak.crypto import (crypt_payload, crypt_table_block, payload_key,
                             rekey_payload, table_key)


def reference_table_crypt(data, block_index):
    key, counter = table_key(block_index)
    out = bytearray()
    for b in data:
        out.append(b ^ key)
        key = (key + counter) & 0xFF
        counter = (counter + 77) & 0xFF
    return bytes(out)


@pytest.mark.parametrize("block_index", [0, 1, 2, 260, 268 * 3 + 260, 511, 512, 1000])
def test_table_crypt_matches_stepwise_keystream(block_index):
    data = os.urandom(1500)
    assert crypt_table_block(data, block_index) == reference_table_crypt(data, block_index)


@pytest.mark.parametrize("block_index", [0, 7, 300])
def test_table_crypt_is_involution(block_index):
    data = os.urandom(700)
    assert crypt_table_block(crypt_table_block(data, block_index), block_index) == data


def test_table_key_initial_state():
    assert table_key(0) == (100, 100)
    assert table_key(1) == (200, 177)
    # 9-bit mask
    assert table_key(513) == table_key(1)


def test_table_crypt_can_resume_mid_stream():
    data = os.urandom(600)
    whole = crypt_table_block(data, 0)
    assert crypt_table_block(data[:268], 0) + crypt_table_block(data[268:], 268) == whole


def test_empty_input():
    assert crypt_table_block(b"", 3) == b""
    assert crypt_payload(b"", 0x100) == b""


def test_payload_key_values():
    assert payload_key(0x100) == 0x88
    assert payload_key(0) == 0x08
    assert payload_key(0x1FE) == 0xFF
    assert payload_key(0x200) == payload_key(0)


def test_payload_key_depends_on_offset():
    data = b"the same logical payload"
    assert crypt_payload(data, 0x100) != crypt_payload(data, 0x102)
    assert crypt_payload(crypt_payload(data, 0x100), 0x100) == data


def test_rekey_equals_decrypt_then_encrypt():
    data = os.urandom(64)
    stored = crypt_payload(data, 1000)
    assert rekey_payload(stored, 1000, 1237) == crypt_payload(data, 1237)
    assert rekey_payload(stored, 1000, 1000) == stored
