"""Linear to GitHub issue sync"""

__version__ = "1.0.0"
