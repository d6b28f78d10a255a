# crypto.py - table keystream and per-offset payload key of the bundle format
#
# Licensed under the MIT License.

import logging

import numpy as np

# 테이블 키스트림은 블록 인덱스 9비트(0~511) 주기
BLOCK_MASK = 0x1FF
BLOCK_PERIOD = BLOCK_MASK + 1


# 블록 인덱스 → (key, counter) 초기 상태
def table_key(block_index: int):
    block_index &= BLOCK_MASK
    counter = (100 + block_index * 77) & 0xFF
    key = (100 * (block_index + 1) + ((block_index * (block_index - 1) // 2) & 0xFF) * 77) & 0xFF
    return key, counter


# 한 바이트 진행 후의 상태는 다음 블록 인덱스의 초기 상태와 같음.
# 그래서 512개 키를 미리 만들어 두고 인덱스로 꺼내 씀
def _build_keystream() -> np.ndarray:
    keys = np.empty(BLOCK_PERIOD, dtype=np.uint8)
    key, counter = table_key(0)
    for i in range(BLOCK_PERIOD):
        keys[i] = key
        key = (key + counter) & 0xFF
        counter = (counter + 77) & 0xFF
    return keys


KEYSTREAM = _build_keystream()


# 테이블 블록 암복호화 (XOR이라 같은 함수)
def crypt_table_block(data: bytes, block_index: int = 0) -> bytes:
    if not data:
        return b""
    buf = np.frombuffer(data, dtype=np.uint8)
    positions = (np.arange(buf.size, dtype=np.int64) + (block_index & BLOCK_MASK)) & BLOCK_MASK
    return (buf ^ KEYSTREAM[positions]).tobytes()


# 항목 데이터 키: 절대 오프셋에서 유도한 1바이트
def payload_key(offset: int) -> int:
    return ((offset >> 1) & 0xFF) | 0x08


def xor_bytes(data: bytes, key: int) -> bytes:
    if not data or key == 0:
        return bytes(data)
    return (np.frombuffer(data, dtype=np.uint8) ^ np.uint8(key)).tobytes()


def crypt_payload(data: bytes, offset: int) -> bytes:
    return xor_bytes(data, payload_key(offset))


# 오프셋이 바뀐 항목: 옛 키로 풀고 새 키로 다시 잠금 (한 번의 XOR)
def rekey_payload(data: bytes, old_offset: int, new_offset: int) -> bytes:
    key = payload_key(old_offset) ^ payload_key(new_offset)
    if key:
        logging.debug(f"[crypto] 재암호화 0x{old_offset:X} → 0x{new_offset:X} (xor 0x{key:02X})")
    return xor_bytes(data, key)
