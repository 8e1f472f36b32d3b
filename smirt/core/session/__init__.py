from __future__ import annotations

"""
Single-slot session with sliding expiration.

IMPORTANT:
There is exactly one current session per store, not one per user. Issuing a
session overwrites whatever was there (last writer wins).
"""
