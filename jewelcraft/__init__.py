"""
Jewelcraft - AI custom jewelry design backend
"""
__version__ = "1.0.0"
