"""OSS request signing and sending, XML models, retry rules and instance metadata access."""

__version__ = "0.1.0"