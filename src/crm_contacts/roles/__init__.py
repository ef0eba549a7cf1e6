"""
Role administration.
"""
