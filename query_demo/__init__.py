"""
Query Demo - search a fixed record collection and export results to CSV.

This package provides a case-insensitive name/category search with
score ranking and prose explanations, plus spreadsheet-friendly CSV
export delivered as a named download.
"""

__version__ = "0.1.0"
__author__ = "Query Demo Team"
