"""Decryption of the API keys stored on sync links (AES-256-CBC, hex encoded)."""

from typing import Callable

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

Decryptor = Callable[[str, str], str]


def make_decryptor(hex_key: str) -> Decryptor:
    """Return `decrypt(ciphertext_hex, iv_hex) -> plaintext` bound to one key."""
    key = bytes.fromhex(hex_key)
    if len(key) != 32:
        raise ValueError("encryption key must be 32 bytes (64 hex characters)")

    def decrypt(ciphertext: str, iv: str) -> str:
        decryptor = Cipher(algorithms.AES(key), modes.CBC(bytes.fromhex(iv))).decryptor()
        padded = decryptor.update(bytes.fromhex(ciphertext)) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")

    return decrypt


def encrypt(hex_key: str, plaintext: str, iv: str) -> str:
    """Inverse of the decryptor; used by onboarding tooling and tests."""
    key = bytes.fromhex(hex_key)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(bytes.fromhex(iv))).encryptor()
    return (encryptor.update(padded) + encryptor.finalize()).hex()
