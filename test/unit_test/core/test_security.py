"""Unit tests for password hashing and token helpers."""

from kublade.core.security import generate_token, hash_password, hash_token, verify_password


class TestPasswordHashing:
    def test_hash_verifies(self):
        encoded = hash_password("correct horse", iterations=1_000)
        assert verify_password("correct horse", encoded)

    def test_wrong_password_fails(self):
        encoded = hash_password("correct horse", iterations=1_000)
        assert not verify_password("battery staple", encoded)

    def test_hash_is_salted(self):
        assert hash_password("same", iterations=1_000) != hash_password("same", iterations=1_000)

    def test_hash_format(self):
        algorithm, iterations, salt, digest = hash_password("pw", iterations=1_000).split("$")
        assert algorithm == "pbkdf2_sha256"
        assert iterations == "1000"
        assert salt and digest

    def test_malformed_hash_fails(self):
        assert not verify_password("pw", "not-a-hash")
        assert not verify_password("pw", "md5$1$salt$digest")


class TestTokens:
    def test_tokens_are_unique(self):
        assert generate_token() != generate_token()

    def test_token_digest_is_stable(self):
        token = generate_token()
        assert hash_token(token) == hash_token(token)
        assert len(hash_token(token)) == 64
