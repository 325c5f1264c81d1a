"""pw-cli - A small personal password manager.
Secrets live in the OS keyring; a local JSON index records which keys exist.
"""

__version__ = "1.0.0"
