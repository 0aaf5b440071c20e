"""
EduProgress - progress and assignment-audience engine for the learning platform backend.
"""
__version__ = "1.0.0"
