"""
Contact records, verification workflow and bulk import.
"""
