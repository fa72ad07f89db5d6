"""
Confirmation token codec - reversible, integrity-checked email encoding.

Tokens embed the applicant's email in confirmation and edit links so a
click days later can be tied back to the record without storing anything.

Layout (before URL-safe base64, padding stripped):

    mac (32 bytes) | iv (16 bytes) | AES-256-CBC ciphertext

The MAC is HMAC-SHA256 over iv + ciphertext. Encryption and MAC keys are
derived from the configured secret with HKDF, so the two never share key
material. Decoding verifies the MAC in constant time before decrypting and
every failure surfaces as the same InvalidToken, so callers cannot tell a
truncated token from a forged one.
"""

import base64
import hashlib
import hmac
import os

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .exceptions import InvalidToken

_MAC_SIZE = 32
_IV_SIZE = 16
_BLOCK_SIZE = 16
_KDF_INFO = b"registration-token-v1"


class TokenCodec:
    """Encrypt-then-MAC codec keyed by a single process-wide secret."""

    def __init__(self, secret: str | bytes) -> None:
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        if not secret:
            raise ValueError("Token secret must not be empty")

        key_material = HKDF(
            algorithm=hashes.SHA256(),
            length=64,
            salt=None,
            info=_KDF_INFO,
        ).derive(secret)
        self._enc_key = key_material[:32]
        self._mac_key = key_material[32:]

    def encode(self, plaintext: str) -> str:
        """Encrypt plaintext under a fresh random IV and return a URL-safe token."""
        iv = os.urandom(_IV_SIZE)

        padder = padding.PKCS7(_BLOCK_SIZE * 8).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._enc_key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        value = iv + ciphertext
        raw = self._mac(value) + value
        return _to_text(raw)

    def decode(self, token: str) -> str:
        """
        Recover the plaintext from a token.

        Raises:
            InvalidToken: For any malformed, truncated or tampered token
        """
        if not isinstance(token, str) or not token:
            raise InvalidToken()

        try:
            raw = base64.b64decode(
                (token + "=" * (-len(token) % 4)).encode("ascii"),
                altchars=b"-_",
                validate=True,
            )
        except ValueError:
            # binascii.Error and UnicodeEncodeError are both ValueErrors
            raise InvalidToken() from None

        # Reject aliases: standard-alphabet chars and non-zero trailing bits
        if _to_text(raw) != token:
            raise InvalidToken()

        body_size = len(raw) - _MAC_SIZE - _IV_SIZE
        if body_size < _BLOCK_SIZE or body_size % _BLOCK_SIZE:
            raise InvalidToken()

        mac, value = raw[:_MAC_SIZE], raw[_MAC_SIZE:]
        if not hmac.compare_digest(mac, self._mac(value)):
            raise InvalidToken()

        iv, ciphertext = value[:_IV_SIZE], value[_IV_SIZE:]
        try:
            decryptor = Cipher(algorithms.AES(self._enc_key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(_BLOCK_SIZE * 8).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except ValueError:
            raise InvalidToken() from None

    def _mac(self, value: bytes) -> bytes:
        return hmac.new(self._mac_key, value, hashlib.sha256).digest()


def _to_text(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")
