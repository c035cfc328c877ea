"""Campus event ticketing service"""

__version__ = "1.0.0"
