"""
Sign-off Kernel

The document approval core of the thesis-defense management system:
- Per-role signatures attached to each document version
- Aggregate status derived from signatures, never stored
- Append-only signature history
- Optimistic concurrency on every signature-set write
"""

__version__ = "0.1.0"
