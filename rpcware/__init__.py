"""RPC interceptors for call reporting, authentication, rate limiting and logging."""

__version__ = "0.1.0"