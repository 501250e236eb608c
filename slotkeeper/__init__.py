"""
slotkeeper - availability resolution and booking conflict engine.
"""

__version__ = "0.1.0"
