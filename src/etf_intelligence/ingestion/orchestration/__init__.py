from .rate_limiter import IRateLimiter, TokenBucketRateLimiter

__all__ = ["IRateLimiter", "TokenBucketRateLimiter"]
