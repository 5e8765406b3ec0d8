"""Vault transit wrapper: encrypt and decrypt under one named key."""
import base64
import binascii
import logging
from typing import Any, Dict

from .errors import EncodingError
from .vault_client import normalize_mount, translate_errors

logger = logging.getLogger(__name__)


def _string_field(response: Dict[str, Any], name: str, action: str) -> str:
    data = (response or {}).get("data") or {}
    value = data.get(name)
    if not isinstance(value, str):
        raise EncodingError(f"the {action} response has no string {name!r} field")
    return value


class TransitCrypto:
    """
    Encrypts and decrypts values through a Vault transit engine.

    The key name and mount path are fixed at construction. Failures are
    never retried here.
    """

    def __init__(self, client, mount_path: str, key_name: str):
        self.client = client
        self.mount = normalize_mount(mount_path)
        self.key_name = key_name

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a plaintext string.

        Returns:
            Transit ciphertext token (vault:vN:...)

        Raises:
            EncodingError: If the response lacks a string ciphertext
            TransportError: If Vault cannot be reached or rejects the call
        """
        encoded = base64.b64encode(plaintext.encode("utf-8")).decode("ascii")
        with translate_errors(f"transit encrypt with key {self.key_name!r}"):
            response = self.client.secrets.transit.encrypt_data(
                name=self.key_name,
                plaintext=encoded,
                mount_point=self.mount,
            )
        return _string_field(response, "ciphertext", "encrypt")

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a transit ciphertext back to the original plaintext string.

        Raises:
            EncodingError: If the response lacks a string plaintext, or it is not base64 UTF-8
            TransportError: If Vault cannot be reached or rejects the call
        """
        with translate_errors(f"transit decrypt with key {self.key_name!r}"):
            response = self.client.secrets.transit.decrypt_data(
                name=self.key_name,
                ciphertext=ciphertext,
                mount_point=self.mount,
            )
        encoded = _string_field(response, "plaintext", "decrypt")
        try:
            return base64.b64decode(encoded, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise EncodingError(f"the decrypted plaintext is not base64 UTF-8 text: {e}") from e
