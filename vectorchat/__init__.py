"""
vectorchat - chat backend with local retrieval-augmented grounding.
"""

__version__ = "1.0.0"
