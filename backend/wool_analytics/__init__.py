"""
Wool Market Analytics: beacon collector and client tracker.
"""
__version__ = "1.0.0"
