"""
Services Package

Business logic kept apart from HTTP handling (routers):
- authorization.py: pure allow/deny decisions for every lending transition
- ledger.py: the lending ledger (borrow, return, approve, loan listings)
- locks.py: per-book mutual exclusion (in-process or Redis)
- registry.py: book records, listings and owner toggles
- feedback.py: feedback on books and the book rate
- notifications.py: fire-and-forget emails
- storage.py: cover image files
- security.py: password hashing and member access tokens
- rate_limiter.py: slowapi throttling per member or client address
"""
