"""Local SQLite store for the PiScan barcode client: accounts and scanned items."""

__version__ = "0.1.0"
