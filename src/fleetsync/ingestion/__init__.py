"""Ingestion layer.

This package contains helpers that turn payloads received from the
remote store into normalized records ready for reconciliation.
"""

__all__: list[str] = []
