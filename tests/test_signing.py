"""
Tests for request signing

Covers:
- Canonical string construction
- MD5 / SHA256 signatures
- Auth header bundle
- Determinism and sensitivity to single-character changes
"""
import hashlib
import random
import string

import pytest

from qfpay_demo.exceptions import SigningError, ValidationError
from qfpay_demo.services.signing import (
    HEADER_APPCODE,
    HEADER_SIGNATURE,
    HEADER_SIGNATURE_TYPE,
    build_auth_headers,
    canonicalize,
    normalize_algorithm,
    sign,
)

# md5("a=1&b=2k")
PINNED_MD5 = "af97cb1e07cd9f9f1279e0bae215015d"
# sha256("a=1&b=2k")
PINNED_SHA256 = "274499635010f8800e5fa17d45a3e75efaded4df868761a902e54aedb8865759"


def _random_params(rng, size=6):
    keys = rng.sample(string.ascii_letters + "_", size)
    return {
        key: "".join(rng.choices(string.ascii_letters + string.digits, k=rng.randint(1, 12)))
        for key in keys
    }


class TestCanonicalize:
    """Test canonical string construction"""

    def test_sorted_pairs(self):
        assert canonicalize({"b": "2", "a": "1"}) == "a=1&b=2"

    def test_empty(self):
        assert canonicalize({}) == ""

    def test_no_escaping(self):
        """Reserved characters are left for the form encoder"""
        params = {"note": "x=1&y=2", "amount": "100"}
        assert canonicalize(params) == "amount=100&note=x=1&y=2"

    def test_byte_order_not_case_folded(self):
        """Upper-case keys sort before lower-case ones"""
        assert canonicalize({"b": "1", "B": "2", "a": "3"}) == "B=2&a=3&b=1"

    def test_integer_values(self):
        assert canonicalize({"txamt": 500, "page": "1"}) == "page=1&txamt=500"

    def test_whole_float_has_no_fraction(self):
        assert canonicalize({"quantity": 2.0}) == "quantity=2"

    def test_bool_rejected(self):
        with pytest.raises(ValidationError) as exc:
            canonicalize({"flag": True})
        assert exc.value.field == "flag"

    def test_insertion_order_irrelevant(self):
        rng = random.Random(1234)
        for _ in range(50):
            params = _random_params(rng)
            items = list(params.items())
            rng.shuffle(items)
            assert canonicalize(dict(items)) == canonicalize(params)

    def test_keys_strictly_ascending(self):
        rng = random.Random(99)
        for _ in range(50):
            params = _random_params(rng)
            keys = [pair.split("=", 1)[0] for pair in canonicalize(params).split("&")]
            assert keys == sorted(keys)
            assert len(set(keys)) == len(keys)


class TestSign:
    """Test digest computation"""

    def test_pinned_md5(self):
        assert sign("a=1&b=2", "k", "MD5") == PINNED_MD5

    def test_pinned_sha256(self):
        assert sign("a=1&b=2", "k", "SHA256") == PINNED_SHA256

    def test_matches_hashlib(self):
        expected = hashlib.md5("a=1&b=2k".encode("utf-8")).hexdigest()
        assert sign(canonicalize({"b": "2", "a": "1"}), "k") == expected

    def test_algorithm_case_insensitive(self):
        assert sign("a=1", "k", "md5") == sign("a=1", "k", "MD5")
        assert sign("a=1", "k", "sha256") == sign("a=1", "k", "SHA256")

    def test_digest_lengths(self):
        assert len(sign("a=1", "k", "MD5")) == 32
        assert len(sign("a=1", "k", "SHA256")) == 64

    def test_deterministic(self):
        assert sign("a=1&b=2", "secret") == sign("a=1&b=2", "secret")

    def test_unicode_values(self):
        expected = hashlib.md5("name=陳大文k".encode("utf-8")).hexdigest()
        assert sign("name=陳大文", "k") == expected

    def test_empty_secret_refused(self):
        with pytest.raises(SigningError):
            sign("a=1", "")

    def test_unknown_algorithm(self):
        with pytest.raises(ValidationError) as exc:
            sign("a=1", "k", "SHA1")
        assert exc.value.field == "algorithm"

    def test_single_value_mutation_changes_signature(self):
        rng = random.Random(42)
        for _ in range(50):
            params = _random_params(rng)
            original = sign(canonicalize(params), "secret")

            key = rng.choice(list(params))
            value = params[key]
            position = rng.randrange(len(value))
            replacement = rng.choice([c for c in string.ascii_letters if c != value[position]])
            mutated = dict(params)
            mutated[key] = value[:position] + replacement + value[position + 1:]

            assert sign(canonicalize(mutated), "secret") != original

    def test_single_secret_mutation_changes_signature(self):
        rng = random.Random(7)
        params = _random_params(rng)
        canonical = canonicalize(params)
        secret = "merchant_secret_key"
        original = sign(canonical, secret)
        for position in range(len(secret)):
            mutated = secret[:position] + ("X" if secret[position] != "X" else "Y") + secret[position + 1:]
            assert sign(canonical, mutated) != original


class TestNormalizeAlgorithm:
    """Test algorithm name handling"""

    @pytest.mark.parametrize("name,expected", [
        ("md5", "MD5"),
        ("MD5", "MD5"),
        (" Sha256 ", "SHA256"),
    ])
    def test_normalized(self, name, expected):
        assert normalize_algorithm(name) == expected

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            normalize_algorithm("")


class TestBuildAuthHeaders:
    """Test the auth header bundle"""

    def test_headers(self):
        signed = build_auth_headers({"b": "2", "a": "1"}, "APP123", "k", "md5")

        assert signed.canonical == "a=1&b=2"
        assert signed.signature == PINNED_MD5
        assert signed.headers == {
            HEADER_APPCODE: "APP123",
            HEADER_SIGNATURE: PINNED_MD5,
            HEADER_SIGNATURE_TYPE: "MD5",
            "Content-Type": "application/x-www-form-urlencoded",
        }

    def test_sha256_header_type(self):
        signed = build_auth_headers({"a": "1"}, "APP123", "k", "sha256")
        assert signed.headers[HEADER_SIGNATURE_TYPE] == "SHA256"
        assert len(signed.signature) == 64

    def test_missing_appcode(self):
        with pytest.raises(ValidationError) as exc:
            build_auth_headers({"a": "1"}, "", "k")
        assert exc.value.field == "appcode"

    def test_empty_params_refused(self):
        with pytest.raises(ValidationError) as exc:
            build_auth_headers({}, "APP123", "k")
        assert exc.value.field == "params"

    def test_empty_secret_refused(self):
        with pytest.raises(SigningError):
            build_auth_headers({"a": "1"}, "APP123", "")
