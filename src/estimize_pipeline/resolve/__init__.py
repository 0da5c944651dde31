"""Ticker normalization and resolution to the symbol in effect on a date."""
