"""
Stremio Account Manager core.

Manages several Stremio accounts, their addon collections and the debrid
keys embedded in addon URLs from a single local vault.
"""

__version__ = "0.1.0"
