"""
Test suite for consentchain.

This package contains unit tests for:
- Error classification and retry policies
- The retry executor (backoff, exhaustion, cancellation)
- The HGTP client against a faked metagraph
- Configuration and logging
"""
