"""
Revisium SDK Test Suite.

This package contains:
- unit/: Unit tests (mocked transport)
- integration/: Full SDK stack against an in-memory server over httpx.MockTransport
"""
