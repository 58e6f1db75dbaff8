"""
Hashing Utilities — SHA-256 fingerprints of gateway payloads.
"""
import hashlib
import json


def generate_hash(data) -> str:
    """Generate a SHA-256 hash of a JSON value (deterministic, sorted keys)."""
    canonical = json.dumps(data, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(canonical).hexdigest()
