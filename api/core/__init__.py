"""
Core utilities shared across the visit card frontend.

This package hosts:
- configuration helpers (env vars, paths, limits)
- cross-cutting services such as logging, CSRF, rate limit helpers and
  the display-only bearer token decoder.

Routers and services depend on these primitives instead of reading the
environment or request headers directly.
"""
