"""
bookingslots - appointment slot availability and double-booking checks.
"""

__version__ = "0.3.0"
