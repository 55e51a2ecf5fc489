"""dataproof — resumable, confirmation-gated chunked proof submission."""

__version__ = "0.1.0"
