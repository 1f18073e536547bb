"""
High-level use cases for the visit card frontend.

Each service module orchestrates the backend client and the session store to
implement one screen's behaviour (resolve a card page, page through the
directory, submit the author form, aggregate admin totals).

Routers (FastAPI endpoints) call these services instead of issuing HTTP
requests or touching the session store directly.
"""
