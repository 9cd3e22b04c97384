# tests/property/__init__.py
"""Property-based tests for hashpaste.

Properties that must hold for ALL inputs, not just the examples we think of:
- Identifiers are deterministic prefixes of the rendered full hash
- Uploads are idempotent and round-trip byte-for-byte
"""
