"""steam-pricer: rate-limited market price resolution with durable history."""

__version__ = "0.1.0"
