"""
Identity service: registration, login, JWT token lifecycle and user administration.
"""
