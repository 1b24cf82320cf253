"""
환경 변수에 저장하는 접속 정보의 암복호화.

AES-192-CBC. 키와 IV 는 식별 문자열(대문자 DB명, user@host 등)에서 OpenSSL EVP_BytesToKey(MD5, 1회, salt 없음)로
유도하므로 같은 키는 항상 같은 암호문을 만든다. 이전 버전 도구가 안내한 export 값도 그대로 복호화된다.
"""
from __future__ import annotations
from typing import NamedTuple, Optional

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

KEY_SIZE = 24   # aes192
IV_SIZE = 16


class DecodeResult(NamedTuple):
    value: Optional[str]
    decoded: bool   # False 면 평문(또는 다른 키로 암호화된 값)을 그대로 돌려준 것


def derive_key_iv(key: str) -> tuple[bytes, bytes]:
    secret = (key or "").encode("utf-8")
    material = b""
    block = b""
    while len(material) < KEY_SIZE + IV_SIZE:
        digest = hashes.Hash(hashes.MD5())
        digest.update(block + secret)
        block = digest.finalize()
        material += block
    return material[:KEY_SIZE], material[KEY_SIZE:KEY_SIZE + IV_SIZE]


def _cipher(key: str) -> Cipher:
    k, iv = derive_key_iv(key)
    return Cipher(algorithms.AES(k), modes.CBC(iv))


def encode(secret: Optional[str], key: str) -> str:
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    data = padder.update((secret or "").encode("utf-8")) + padder.finalize()
    encryptor = _cipher(key).encryptor()
    return (encryptor.update(data) + encryptor.finalize()).hex().upper()


def decode_secret(cipher_text: Optional[str], key: str) -> DecodeResult:
    if not cipher_text:
        return DecodeResult(cipher_text, False)
    try:
        raw = bytes.fromhex(cipher_text)
        decryptor = _cipher(key).decryptor()
        padded = decryptor.update(raw) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plain = unpadder.update(padded) + unpadder.finalize()
        return DecodeResult(plain.decode("utf-8"), True)
    except ValueError:
        # hex 아님 / 블록 길이 불일치 / 패딩 오류 / UTF-8 아님 → 평문으로 간주
        return DecodeResult(cipher_text, False)


def decode(cipher_text: Optional[str], key: str) -> Optional[str]:
    return decode_secret(cipher_text, key).value
