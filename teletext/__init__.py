"""
Resilient data-fetch core for the Teletext content browser.
"""

__version__ = "0.1.0"
