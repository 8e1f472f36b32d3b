from __future__ import annotations

"""
User accounts: records, bootstrap source, and the registry that owns them.

Passwords are stored and compared in plaintext. This matches existing
deployments and is a known deficiency; changing it needs an explicit decision
and a migration of stored snapshots.
"""
