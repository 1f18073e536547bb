"""
Persistence adapters.

``backend_client`` talks to the REST backend that owns users and visit cards;
``sql_repository`` keeps this frontend's own login sessions.
Services depend on these adapters instead of issuing HTTP or SQL directly.
"""
