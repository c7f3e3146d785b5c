"""image-pull-creds: keep registry pull secrets on every service account."""

__version__ = "0.1.0"
