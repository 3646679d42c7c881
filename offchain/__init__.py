"""
GreenWorld offchain tooling
===========================

- migrate: runs the numbered deployment scripts in migrations/
- trading: sends setTradingIsEnabled to the deployed GREENTEST token
"""

__version__ = "1.0.0"
