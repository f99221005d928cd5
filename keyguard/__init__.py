"""
keyguard — interprocedural detection of uncaught KeyError paths in Python.
"""

__version__ = "0.1.0"
