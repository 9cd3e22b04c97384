"""
hashpaste: Content-addressed ephemeral paste store.

Uploads are fingerprinted into short, deterministic identifiers and kept in
a durable origin tier with a fast regional edge cache in front of it.
"""

__version__ = "0.1.0"
