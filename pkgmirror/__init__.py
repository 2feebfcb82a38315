"""Mirror third-party binaries and npm tarballs into GitHub releases."""

__version__ = "0.3.0"
