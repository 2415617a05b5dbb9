"""
scriptguard - quality guard, auto-improve loop and version promotion
for generated product promo video scripts.
"""

__version__ = "0.1.0"
