"""
Test suite for multisig_core.crypto_utils — secp256k1 primitives.

Covers:
  - SHA-256 helper
  - Key-pair generation and public-key derivation
  - Public-key normalisation (raw / compressed / uncompressed)
  - Deterministic, low-S signing
  - Verification of valid, forged, and malformed signatures
  - Secp256k1Provider delegating to the module functions
"""

import hashlib
import unittest

from ecdsa import SECP256k1, VerifyingKey

from multisig_core.crypto_utils import (
    DEFAULT_PROVIDER,
    PUBLIC_KEY_SIZE,
    SIGNATURE_SIZE,
    Secp256k1Provider,
    generate_keypair,
    generate_nonce,
    normalize_public_key,
    public_key_from_private,
    sha256,
    sign,
    verify,
)


class TestHashing(unittest.TestCase):

    def test_sha256_known_vector(self):
        self.assertEqual(sha256(b"hello"), hashlib.sha256(b"hello").digest())

    def test_sha256_length(self):
        self.assertEqual(len(sha256(b"")), 32)

    def test_nonce_is_128_bit_hex(self):
        n = generate_nonce()
        self.assertEqual(len(n), 32)
        int(n, 16)

    def test_nonces_unique(self):
        self.assertEqual(len({generate_nonce() for _ in range(100)}), 100)


class TestKeys(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.priv, cls.pub = generate_keypair()

    def test_sizes(self):
        self.assertEqual(len(self.priv), 32)
        self.assertEqual(len(self.pub), PUBLIC_KEY_SIZE)
        self.assertEqual(self.pub[0], 0x04)

    def test_public_from_private(self):
        self.assertEqual(public_key_from_private(self.priv), self.pub)

    def test_normalize_uncompressed_is_identity(self):
        self.assertEqual(normalize_public_key(self.pub), self.pub)

    def test_normalize_compressed(self):
        vk = VerifyingKey.from_string(self.pub, curve=SECP256k1)
        compressed = vk.to_string("compressed")
        self.assertEqual(len(compressed), 33)
        self.assertEqual(normalize_public_key(compressed), self.pub)

    def test_normalize_raw(self):
        self.assertEqual(normalize_public_key(self.pub[1:]), self.pub)

    def test_normalize_rejects_garbage(self):
        with self.assertRaises(ValueError):
            normalize_public_key(b"\x04" + b"\x01" * 64)
        with self.assertRaises(ValueError):
            normalize_public_key(b"short")

    def test_normalize_rejects_non_bytes(self):
        with self.assertRaises(ValueError):
            normalize_public_key(self.pub.hex())


class TestSignVerify(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.priv, cls.pub = generate_keypair()
        cls.other_priv, cls.other_pub = generate_keypair()
        cls.digest = sha256(b"transfer 100 to rBob")

    def test_roundtrip(self):
        sig = sign(self.priv, self.digest)
        self.assertEqual(len(sig), SIGNATURE_SIZE)
        self.assertTrue(verify(self.pub, self.digest, sig))

    def test_deterministic(self):
        self.assertEqual(sign(self.priv, self.digest), sign(self.priv, self.digest))

    def test_low_s(self):
        sig = sign(self.priv, self.digest)
        s = int.from_bytes(sig[32:], "big")
        self.assertLessEqual(s, SECP256k1.order // 2)

    def test_wrong_key(self):
        sig = sign(self.priv, self.digest)
        self.assertFalse(verify(self.other_pub, self.digest, sig))

    def test_wrong_digest(self):
        sig = sign(self.priv, self.digest)
        self.assertFalse(verify(self.pub, sha256(b"other"), sig))

    def test_bit_flip(self):
        sig = bytearray(sign(self.priv, self.digest))
        sig[10] ^= 0x01
        self.assertFalse(verify(self.pub, self.digest, bytes(sig)))

    def test_malformed_lengths(self):
        self.assertFalse(verify(self.pub, self.digest, b""))
        self.assertFalse(verify(self.pub, self.digest, b"\x00" * 63))
        self.assertFalse(verify(self.pub, self.digest, b"\xff" * 64))

    def test_non_bytes_signature(self):
        self.assertFalse(verify(self.pub, self.digest, None))
        self.assertFalse(verify(self.pub, self.digest, "ab" * 64))

    def test_bad_public_key(self):
        sig = sign(self.priv, self.digest)
        self.assertFalse(verify(b"\x04" + b"\x01" * 64, self.digest, sig))

    def test_sign_rejects_wrong_digest_size(self):
        with self.assertRaises(ValueError):
            sign(self.priv, b"not a digest")


class TestProvider(unittest.TestCase):

    def test_default_is_secp256k1(self):
        self.assertIsInstance(DEFAULT_PROVIDER, Secp256k1Provider)

    def test_provider_roundtrip(self):
        p = Secp256k1Provider()
        priv, pub = generate_keypair()
        d = p.hash(b"payload")
        self.assertTrue(p.verify(pub, d, p.sign(priv, d)))


if __name__ == "__main__":
    unittest.main()
