"""
Outbound email and HTML page rendering.
"""
