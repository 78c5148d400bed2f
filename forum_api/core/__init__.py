"""
Core application utilities.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with request correlation ids
- The region-based query cache
- FastAPI dependency helpers (repository/service factories, forum lookup)
"""
