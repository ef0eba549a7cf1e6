"""
Contact ratings and rating profiles.
"""
