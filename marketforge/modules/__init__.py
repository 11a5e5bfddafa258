"""
Market Forge Modules
====================

Flask blueprint modules: printful, printful_browser, marketplace, health.
"""

__all__ = ['printful', 'printful_browser', 'marketplace', 'health']
