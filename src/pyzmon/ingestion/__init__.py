"""Ingestion layer.

This package contains the pure decoding and normalization steps that turn
decoded protocol records into domain models.
"""

__all__: list[str] = []
