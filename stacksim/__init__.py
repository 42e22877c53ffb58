"""
stacksim: an in-memory simulated ledger for exercising contracts from tests.
"""

__version__ = "0.1.0"
