"""
Quote Request Stream

A deduplicating work pipeline over a Redis stream: producers admit stock and
fx refresh requests, a consumer-group worker dispatches them to downstream
services with acknowledge-on-success, and pending entries left by stalled
deliveries are reclaimed and retried.
"""

__version__ = "1.0.0"
