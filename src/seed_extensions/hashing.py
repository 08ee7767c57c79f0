"""Drift detection hashes for ControllerInstallation labels.

The labels are content digests of the seed spec, the registration spec and
the deployment configuration. Extension controllers compare them to decide
whether they have to redeploy.
"""

import hashlib
import json
from typing import Any

# Label keys carrying the hashes on ControllerInstallations
SEED_SPEC_HASH_LABEL = "seed-spec-hash"
REGISTRATION_SPEC_HASH_LABEL = "registration-spec-hash"
DEPLOYMENT_HASH_LABEL = "deployment-hash"

# Number of hex characters kept from the full digest
SHORT_HASH_LENGTH = 16


def canonical_json(obj: Any) -> bytes:
    """Serialize an object to canonical JSON.

    Keys are sorted and separators are compact, so structurally equal
    objects always serialize to the same bytes.

    Args:
        obj: A JSON-serializable object.

    Returns:
        The UTF-8 encoded canonical JSON document.

    Raises:
        TypeError: If the object is not JSON-serializable.

    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def hash_for_map(obj: Any) -> str:
    """Return the SHA-256 hex digest of the canonical JSON of an object."""
    return hashlib.sha256(canonical_json(obj)).hexdigest()


def short_hash(obj: Any) -> str:
    """Return the digest of an object truncated for use as a label value."""
    return hash_for_map(obj)[:SHORT_HASH_LENGTH]
