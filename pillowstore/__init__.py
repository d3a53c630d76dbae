"""
Pillow Store Data Layer

Offline-tolerant persistence for the pillow store front end: remote-first
reads, local-first writes, and neck measurement fitness scoring.
"""

__version__ = "1.0.0"
