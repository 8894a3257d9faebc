"""
Tongits: rules engine, settlement and bots for the three-player rummy game.
"""

__version__ = "0.1.0"
