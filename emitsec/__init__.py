"""Channel parsing, security keys, key ciphers and licences for a pub/sub broker."""

__version__ = "0.1.0"