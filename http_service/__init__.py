"""Static-response HTTP service with graceful shutdown."""

__version__ = "1.0.0"
