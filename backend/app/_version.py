"""
Version import for the Bug Whisperer backend.

Single source of truth: bugwhisperer/_version.py
"""

from bugwhisperer._version import __version__, __release_date__
