"""FastAPI user management service.

Provides REST endpoints to register users, log in with email and
password to obtain a bearer token, and list users with that token.
"""

__version__ = "0.1.0"
