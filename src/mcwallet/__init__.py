"""
mcwallet: coin operators for a multi-coin wallet.
"""

__version__ = "0.1.0"
