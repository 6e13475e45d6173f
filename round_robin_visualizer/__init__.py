"""
Round Robin visualizer: step-by-step CPU scheduling simulation over
process catalogs stored in a SQLite database.
"""

__version__ = "0.1.0"
