"""Security package: password hashing and token authentication."""
