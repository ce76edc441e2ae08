"""
Authentication helpers: GitHub OAuth, session tokens and password hashing.
"""
