"""sessions/ -- Server-side session records keyed by an opaque cookie value.

Layer rule: sessions/ imports only stdlib, third-party libraries and core/.
auth/, api/ and web/ import from sessions/, not the other way around.
"""
