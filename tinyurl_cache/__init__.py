"""
Cache access layer of the TinyURL service.
"""

__version__ = "1.0.0"
