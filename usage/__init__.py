"""usage/ -- Per-user quota for the metered meal assistant call.

Layer rule: usage/ imports only stdlib, third-party libraries and core/.
"""
