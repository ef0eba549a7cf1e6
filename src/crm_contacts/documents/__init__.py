"""
Contact document attachments.
"""
