"""
slurp - S3 bucket enumerator
"""

__version__ = "2.0"
