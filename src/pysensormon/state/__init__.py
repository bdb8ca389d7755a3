"""State/store layer.

This package is the single source of truth for how decoded, throttled
channel readings are merged into one consistently typed sensor snapshot.
"""
