"""
gmbt - Gothic Mod Build Tool

Resolves Daedalus script lists and runs staged test sessions of a Gothic
modification against the game engine.
"""

__version__ = "0.1.0"
__author__ = "gmbt contributors"
