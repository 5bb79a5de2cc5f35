"""
Payment gateway adapter tests.
"""
