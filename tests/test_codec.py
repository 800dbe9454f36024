"""
Tests for the backup codec.

Uses Python's unittest module.
Tests encryption round trips, wire layout, and rejection of wrong passwords
and damaged blobs.
"""

from __future__ import annotations

import base64
import json
import unittest
from unittest.mock import patch

from imagebox.backup import codec
from imagebox.backup.codec import (
    HEADER_LENGTH,
    NONCE_LENGTH,
    PBKDF2_ITERATIONS,
    SALT_LENGTH,
    TAG_LENGTH,
    decrypt,
    decrypt_bytes,
    derive_key,
    encrypt,
    encrypt_bytes,
)
from imagebox.backup.errors import CryptoFailure, DecryptionFailed, InvalidBackupFormat
from imagebox.backup.snapshot import (
    ModelRecord,
    ModelType,
    ProviderRecord,
    ProviderType,
    Snapshot,
    TemplateRecord,
)


def make_snapshot() -> Snapshot:
    return Snapshot(
        version="1.1",
        timestamp="2024-01-15T10:30:00.000Z",
        providers=[
            ProviderRecord(name="Acme", type=ProviderType.OPENAI, base_url="https://acme.test", api_key="k1"),
        ],
        models=[
            ModelRecord(
                name="Acme Draw",
                model_identifier="acme/draw-1",
                provider_name="Acme",
                type=ModelType.IMAGE,
            ),
        ],
        templates=[
            TemplateRecord(name="Poster", prompt_template="Poster of {{user_input}}", icon="🎨"),
        ],
        remote_access_enabled=False,
        access_tokens=[],
    )


class TestConstants(unittest.TestCase):
    """Tests for the fixed wire parameters."""

    def test_header_layout(self) -> None:
        """Test header sizes match the blob layout."""
        self.assertEqual(SALT_LENGTH, 32)
        self.assertEqual(NONCE_LENGTH, 16)
        self.assertEqual(TAG_LENGTH, 16)
        self.assertEqual(HEADER_LENGTH, 64)

    def test_kdf_iterations(self) -> None:
        """Test PBKDF2 iteration count."""
        self.assertEqual(PBKDF2_ITERATIONS, 100_000)


class TestDeriveKey(unittest.TestCase):
    """Tests for password key derivation."""

    def test_key_length(self) -> None:
        """Test derived key is 32 bytes."""
        self.assertEqual(len(derive_key("pw", b"\x00" * SALT_LENGTH)), 32)

    def test_deterministic(self) -> None:
        """Test same password and salt give the same key."""
        salt = b"\x01" * SALT_LENGTH
        self.assertEqual(derive_key("pw", salt), derive_key("pw", salt))

    def test_salt_changes_key(self) -> None:
        """Test a different salt gives a different key."""
        self.assertNotEqual(
            derive_key("pw", b"\x01" * SALT_LENGTH),
            derive_key("pw", b"\x02" * SALT_LENGTH),
        )


class TestEncryptBytes(unittest.TestCase):
    """Tests for the raw byte layer."""

    def test_round_trip(self) -> None:
        """Test decrypt_bytes inverts encrypt_bytes."""
        blob = encrypt_bytes(b"hello world", "secret")
        self.assertEqual(decrypt_bytes(blob, "secret"), b"hello world")

    def test_blob_is_base64_with_header(self) -> None:
        """Test blob decodes to header plus ciphertext of plaintext length."""
        blob = encrypt_bytes(b"0123456789", "secret")
        raw = base64.b64decode(blob, validate=True)
        self.assertEqual(len(raw), HEADER_LENGTH + 10)

    def test_empty_plaintext(self) -> None:
        """Test empty plaintext produces a header-only blob."""
        blob = encrypt_bytes(b"", "secret")
        self.assertEqual(len(base64.b64decode(blob)), HEADER_LENGTH)
        self.assertEqual(decrypt_bytes(blob, "secret"), b"")

    def test_fresh_salt_and_nonce(self) -> None:
        """Test encrypting twice gives different blobs."""
        first = base64.b64decode(encrypt_bytes(b"same", "secret"))
        second = base64.b64decode(encrypt_bytes(b"same", "secret"))
        self.assertNotEqual(first[:SALT_LENGTH], second[:SALT_LENGTH])
        self.assertNotEqual(
            first[SALT_LENGTH:SALT_LENGTH + NONCE_LENGTH],
            second[SALT_LENGTH:SALT_LENGTH + NONCE_LENGTH],
        )

    def test_primitive_failure_raises_crypto_failure(self) -> None:
        """Test a failing random source surfaces as CryptoFailure."""
        with patch.object(codec.secrets, "token_bytes", side_effect=OSError("no entropy")):
            with self.assertRaises(CryptoFailure) as cm:
                encrypt_bytes(b"data", "secret")
        self.assertEqual(cm.exception.message, "Backup creation failed")


class TestDecryptRejects(unittest.TestCase):
    """Tests for rejection of bad passwords and damaged blobs."""

    @classmethod
    def setUpClass(cls) -> None:
        cls.blob = encrypt_bytes(b'{"version": "1.1"}', "right")

    def assert_decryption_failed(self, blob: str, password: str = "right") -> None:
        with self.assertRaises(DecryptionFailed) as cm:
            decrypt_bytes(blob, password)
        self.assertEqual(cm.exception.message, "Invalid password or corrupted backup file")

    def test_wrong_password(self) -> None:
        """Test wrong password fails authentication."""
        self.assert_decryption_failed(self.blob, "wrong")

    def test_flipped_ciphertext_byte(self) -> None:
        """Test tampering with the ciphertext is detected."""
        raw = bytearray(base64.b64decode(self.blob))
        raw[-1] ^= 0x01
        self.assert_decryption_failed(base64.b64encode(bytes(raw)).decode())

    def test_flipped_tag_byte(self) -> None:
        """Test tampering with the tag is detected."""
        raw = bytearray(base64.b64decode(self.blob))
        raw[SALT_LENGTH + NONCE_LENGTH] ^= 0x80
        self.assert_decryption_failed(base64.b64encode(bytes(raw)).decode())

    def test_flipped_salt_byte(self) -> None:
        """Test tampering with the salt changes the key and fails."""
        raw = bytearray(base64.b64decode(self.blob))
        raw[0] ^= 0x01
        self.assert_decryption_failed(base64.b64encode(bytes(raw)).decode())

    def test_truncated_below_header(self) -> None:
        """Test blob shorter than the header is rejected."""
        raw = base64.b64decode(self.blob)[:HEADER_LENGTH - 1]
        self.assert_decryption_failed(base64.b64encode(raw).decode())

    def test_truncated_ciphertext(self) -> None:
        """Test dropping ciphertext bytes is detected."""
        raw = base64.b64decode(self.blob)[:-3]
        self.assert_decryption_failed(base64.b64encode(raw).decode())

    def test_not_base64(self) -> None:
        """Test non-base64 input is rejected."""
        self.assert_decryption_failed("this is not base64!!")

    def test_empty_blob(self) -> None:
        """Test empty input is rejected."""
        self.assert_decryption_failed("")

    def test_surrounding_whitespace_is_accepted(self) -> None:
        """Test a trailing newline from a text file does not matter."""
        self.assertEqual(decrypt_bytes(f"  {self.blob}\n", "right"), b'{"version": "1.1"}')


class TestSnapshotCodec(unittest.TestCase):
    """Tests for snapshot encrypt/decrypt."""

    def test_round_trip(self) -> None:
        """Test decrypt(encrypt(s)) equals s."""
        snapshot = make_snapshot()
        self.assertEqual(decrypt(encrypt(snapshot, "pw"), "pw"), snapshot)

    def test_unicode_survives(self) -> None:
        """Test non-ASCII names and passwords round trip."""
        snapshot = Snapshot(
            version="1.1",
            timestamp="2024-01-15T10:30:00.000Z",
            providers=[ProviderRecord(name="Überprovider 图像", type=ProviderType.GEMINI)],
            models=[],
            templates=[],
        )
        result = decrypt(encrypt(snapshot, "pässwörd"), "pässwörd")
        self.assertEqual(result.providers[0].name, "Überprovider 图像")

    def test_absent_optionals_stay_absent(self) -> None:
        """Test None optional sections are omitted and decode as None."""
        snapshot = Snapshot(version="1.0", timestamp="t", providers=[], models=[], templates=[])
        result = decrypt(encrypt(snapshot, "pw"), "pw")
        self.assertIsNone(result.remote_access_enabled)
        self.assertIsNone(result.access_tokens)

    def test_wrong_password(self) -> None:
        """Test wrong password raises DecryptionFailed."""
        with self.assertRaises(DecryptionFailed):
            decrypt(encrypt(make_snapshot(), "pw"), "PW")

    def test_non_json_plaintext(self) -> None:
        """Test authentic but non-JSON plaintext is an invalid format."""
        blob = encrypt_bytes(b"not json at all", "pw")
        with self.assertRaises(InvalidBackupFormat) as cm:
            decrypt(blob, "pw")
        self.assertEqual(cm.exception.message, "Invalid backup file format")

    def test_non_utf8_plaintext(self) -> None:
        """Test authentic but non-UTF-8 plaintext is an invalid format."""
        blob = encrypt_bytes(b"\xff\xfe\xfd", "pw")
        with self.assertRaises(InvalidBackupFormat):
            decrypt(blob, "pw")

    def test_json_without_required_fields(self) -> None:
        """Test JSON missing required fields is an invalid format."""
        blob = encrypt_bytes(json.dumps({"version": "1.1"}).encode(), "pw")
        with self.assertRaises(InvalidBackupFormat):
            decrypt(blob, "pw")


if __name__ == "__main__":
    unittest.main()
