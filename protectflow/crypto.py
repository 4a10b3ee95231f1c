"""
Content key utilities.

Keys are 128-bit AES keys used for common encryption. Before a key leaves
the process it is wrapped with RSA-OAEP using the platform's protection
certificate, and a checksum lets the platform verify the unwrapped value.
"""
from __future__ import annotations

import base64
import secrets
import uuid

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes


CONTENT_KEY_SIZE = 16
CONTENT_KEY_ID_PREFIX = "nb:kid:UUID:"
CHECKSUM_SIZE = 8


def generate_content_key() -> bytes:
    """Generate a cryptographically secure 128-bit content key."""
    return secrets.token_bytes(CONTENT_KEY_SIZE)


def generate_key_identifier() -> uuid.UUID:
    """Generate a fresh key identifier (KID)."""
    return uuid.uuid4()


def content_key_id(key_identifier: uuid.UUID) -> str:
    """Platform entity id for a key identifier."""
    return f"{CONTENT_KEY_ID_PREFIX}{key_identifier}"


def key_identifier_from_id(key_id: str) -> uuid.UUID:
    """Inverse of content_key_id()."""
    if not key_id.startswith(CONTENT_KEY_ID_PREFIX):
        raise ValueError(f"Not a content key id: {key_id}")
    return uuid.UUID(key_id[len(CONTENT_KEY_ID_PREFIX):])


def calculate_key_checksum(key_value: bytes, key_identifier: uuid.UUID) -> str:
    """
    Checksum the platform uses to verify a wrapped content key.

    The key identifier (in little-endian GUID byte order) is encrypted with
    the content key using AES-ECB; the first 8 bytes are the checksum.

    Returns:
        Base64-encoded checksum
    """
    if len(key_value) != CONTENT_KEY_SIZE:
        raise ValueError(f"Content key must be {CONTENT_KEY_SIZE} bytes")

    encryptor = Cipher(algorithms.AES(key_value), modes.ECB()).encryptor()
    encrypted = encryptor.update(key_identifier.bytes_le) + encryptor.finalize()
    return base64.b64encode(encrypted[:CHECKSUM_SIZE]).decode()


def encrypt_content_key(key_value: bytes, certificate: str) -> str:
    """
    Wrap a content key with the platform's protection certificate.

    Args:
        key_value: Raw content key bytes
        certificate: Base64-encoded DER X.509 certificate

    Returns:
        Base64-encoded RSA-OAEP (SHA-1) ciphertext
    """
    cert = x509.load_der_x509_certificate(base64.b64decode(certificate))
    public_key = cert.public_key()
    encrypted = public_key.encrypt(
        key_value,
        padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA1()),
            algorithm=hashes.SHA1(),
            label=None,
        ),
    )
    return base64.b64encode(encrypted).decode()
