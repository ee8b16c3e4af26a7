"""
e3d_commerce.auth

Authentication/authorization package.

Responsibilities:
- JWT and password hashing helpers.
- FastAPI auth dependencies (Principal + RBAC).
"""

# Package marker.
