"""
Authentication and role-based authorization.
"""
