"""
Backup codec: configuration snapshot <-> encrypted, base64 encoded blob.

Security Design:
    - Key derived from the backup password with PBKDF2-HMAC-SHA256
      (100,000 iterations, 32-byte key)
    - Fresh random 256-bit salt and 128-bit nonce for every backup
    - AES-256-GCM authenticated encryption; any tampering, truncation or
      wrong password fails the tag check and nothing is returned
    - Wrong password and corrupted data raise the same error with the same
      message so the codec cannot be used as a password oracle

Blob Layout (base64 of):
    [salt: 32 bytes][nonce: 16 bytes][tag: 16 bytes][ciphertext: rest]

The layout and KDF parameters are not recorded in the blob. Changing any
of them makes previously written backups unreadable.
"""

from __future__ import annotations

import base64
import binascii
import json
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from imagebox.backup.errors import CryptoFailure, DecryptionFailed, InvalidBackupFormat
from imagebox.backup.snapshot import Snapshot

SALT_LENGTH = 32  # 256 bits
NONCE_LENGTH = 16  # 128 bits
TAG_LENGTH = 16  # 128 bits
KEY_LENGTH = 32  # AES-256
PBKDF2_ITERATIONS = 100_000

HEADER_LENGTH = SALT_LENGTH + NONCE_LENGTH + TAG_LENGTH


def derive_key(password: str, salt: bytes) -> bytes:
    """
    Derive an AES-256 key from a backup password and salt.

    Args:
        password: User-provided backup password.
        salt: Random salt bytes from the blob header.

    Returns:
        32-byte key.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def encrypt_bytes(plaintext: bytes, password: str) -> str:
    """
    Encrypt raw bytes into a backup blob.

    Raises:
        CryptoFailure: If a cryptographic primitive fails.
    """
    try:
        salt = secrets.token_bytes(SALT_LENGTH)
        nonce = secrets.token_bytes(NONCE_LENGTH)
        key = derive_key(password, salt)

        # AESGCM appends the tag to the ciphertext
        sealed = AESGCM(key).encrypt(nonce, plaintext, None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

        return base64.b64encode(salt + nonce + tag + ciphertext).decode("ascii")
    except Exception as e:
        raise CryptoFailure() from e


def decrypt_bytes(blob: str, password: str) -> bytes:
    """
    Authenticate and decrypt a backup blob.

    The blob is untrusted input. Every failure before the plaintext is
    authenticated raises DecryptionFailed.

    Raises:
        DecryptionFailed: Wrong password, or a truncated, damaged or
            non-base64 blob.
    """
    try:
        raw = base64.b64decode(blob.strip(), validate=True)
    except (binascii.Error, ValueError, AttributeError) as e:
        raise DecryptionFailed() from e

    if len(raw) < HEADER_LENGTH:
        raise DecryptionFailed()

    salt = raw[:SALT_LENGTH]
    nonce = raw[SALT_LENGTH : SALT_LENGTH + NONCE_LENGTH]
    tag = raw[SALT_LENGTH + NONCE_LENGTH : HEADER_LENGTH]
    ciphertext = raw[HEADER_LENGTH:]

    key = derive_key(password, salt)
    try:
        return AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as e:
        raise DecryptionFailed() from e


def encrypt(snapshot: Snapshot, password: str) -> str:
    """
    Encrypt a configuration snapshot.

    Args:
        snapshot: Snapshot to protect.
        password: Backup password. Callers reject empty passwords before
            calling the codec.

    Returns:
        Base64 blob.

    Raises:
        CryptoFailure: If serialization or encryption fails.
    """
    try:
        plaintext = json.dumps(snapshot.to_dict(), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise CryptoFailure() from e
    return encrypt_bytes(plaintext, password)


def decrypt(blob: str, password: str) -> Snapshot:
    """
    Decrypt a backup blob into a snapshot.

    Args:
        blob: Base64 blob produced by encrypt(), or untrusted input.
        password: Backup password.

    Returns:
        Parsed Snapshot.

    Raises:
        DecryptionFailed: Wrong password or corrupted blob.
        InvalidBackupFormat: Decrypted data is not a valid snapshot.
    """
    plaintext = decrypt_bytes(blob, password)
    try:
        data = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidBackupFormat() from e
    return Snapshot.from_dict(data)
