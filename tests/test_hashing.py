"""Tests for hashing.py module."""

from seed_extensions.hashing import SHORT_HASH_LENGTH, canonical_json, hash_for_map, short_hash


class TestHashing:
    """Tests for drift detection hashes."""

    def test_key_order_does_not_matter(self):
        """Test structurally equal maps hash identically."""
        first = {"provider": {"type": "aws", "region": "eu"}, "dns": {"provider": {"type": "aws-route53"}}}
        second = {"dns": {"provider": {"type": "aws-route53"}}, "provider": {"region": "eu", "type": "aws"}}

        assert hash_for_map(first) == hash_for_map(second)

    def test_different_content_differs(self):
        """Test structurally different maps hash differently."""
        assert short_hash({"type": "aws"}) != short_hash({"type": "gcp"})
        assert short_hash({"values": [1, 2]}) != short_hash({"values": [2, 1]})

    def test_short_hash_length(self):
        """Test label values are truncated to 16 hex characters."""
        value = short_hash({"type": "helm", "providerConfig": None})

        assert len(value) == SHORT_HASH_LENGTH
        assert all(c in "0123456789abcdef" for c in value)
        assert hash_for_map({"type": "helm", "providerConfig": None}).startswith(value)

    def test_canonical_json(self):
        """Test the canonical encoding is compact and sorted."""
        assert canonical_json({"b": 1, "a": {"d": 2, "c": "ü"}}) == '{"a":{"c":"ü","d":2},"b":1}'.encode()
