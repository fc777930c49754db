from .retry import backoff_delay, exponential_backoff

__all__ = ["backoff_delay", "exponential_backoff"]
