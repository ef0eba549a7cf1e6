"""
Proxy to the external sales API.
"""
