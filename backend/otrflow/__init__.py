"""
otrflow: decode and cut recordings of the online TV recorder service.
"""

__version__ = "0.1.0"
