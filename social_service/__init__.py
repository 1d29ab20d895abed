"""
Social Service - users, posts with soft delete, and expiring messages
"""
__version__ = "1.0.0"
