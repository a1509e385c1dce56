import string
import unittest
from datetime import datetime

from archive_ops import PasswordMode, resolve_secret
from archive_ops.errors import ConfigurationError, PasswordError, PasswordMismatchError
from archive_ops.password_policy import (
    RANDOM_SECRET_LENGTH,
    confirm_secret,
    generate_random_secret,
    timestamp_secret,
)
from .test_utils import BaseTestCase

ALPHANUMERIC = set(string.ascii_letters + string.digits)


class TestResolveSecret(BaseTestCase):
    """Test every password mode."""

    def test_random_secret_is_16_alphanumeric_characters(self):
        secret = resolve_secret(PasswordMode.RANDOM)

        self.assertEqual(len(secret), RANDOM_SECRET_LENGTH)
        self.assertTrue(set(secret) <= ALPHANUMERIC)

    def test_random_secrets_differ(self):
        secrets = {generate_random_secret() for _ in range(20)}
        self.assertGreater(len(secrets), 1)

    def test_none_mode_returns_none(self):
        self.assertIsNone(resolve_secret(PasswordMode.NONE))
        self.assertIsNone(resolve_secret("none"))

    def test_timestamp_uses_clock(self):
        fixed = datetime(2024, 1, 2, 3, 4, 5)
        secret = resolve_secret(PasswordMode.TIMESTAMP, clock=lambda: fixed)

        self.assertEqual(secret, "20240102030405")
        self.assertEqual(len(secret), 14)
        self.assertTrue(secret.isdigit())

    def test_timestamp_secret_format(self):
        self.assertEqual(timestamp_secret(datetime(1999, 12, 31, 23, 59, 58)), "19991231235958")

    def test_manual_mode_returns_preset(self):
        self.assertEqual(resolve_secret("manual", "s3cret", "s3cret"), "s3cret")
        self.assertEqual(resolve_secret(PasswordMode.MANUAL, "s3cret"), "s3cret")

    def test_manual_mismatch_raises(self):
        with self.assertRaises(PasswordMismatchError):
            resolve_secret(PasswordMode.MANUAL, "one", "two")

    def test_manual_without_secret_raises(self):
        with self.assertRaises(PasswordError):
            resolve_secret(PasswordMode.MANUAL)

    def test_manual_empty_secret_raises(self):
        with self.assertRaises(PasswordError):
            resolve_secret(PasswordMode.MANUAL, "", "")

    def test_unknown_mode_raises(self):
        with self.assertRaises(ConfigurationError):
            resolve_secret("sometimes")

    def test_confirm_secret(self):
        self.assertEqual(confirm_secret("abc", "abc"), "abc")
        with self.assertRaises(PasswordMismatchError):
            confirm_secret("abc", "abd")


if __name__ == "__main__":
    unittest.main()
