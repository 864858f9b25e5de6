"""
Transfer Market

Team rosters, transfer listings and atomic player purchases.
"""

__version__ = "1.0.0"
