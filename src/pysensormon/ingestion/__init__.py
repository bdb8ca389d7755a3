"""Ingestion layer.

This package turns raw platform sensor events into typed, validated
readings. Nothing past this boundary inspects a payload for optional keys.
"""

__all__: list[str] = []
