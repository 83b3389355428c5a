"""
Clinic Portal

Async API client for the clinic management backend: request execution,
response caching, domain services, query hooks and report export.
"""

__version__ = "0.1.0"
