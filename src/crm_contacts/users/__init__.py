"""
User administration.
"""
