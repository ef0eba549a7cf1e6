"""
Shared infrastructure: database, logging, exceptions and middleware.
"""
