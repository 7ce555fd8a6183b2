"""
Round-Up Donation API
"""

__version__ = "1.0.0"
