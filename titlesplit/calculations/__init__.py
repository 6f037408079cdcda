"""
Title Splitting Calculation Engine

Seller, buyer, financing and results models. The calculator module that
wires them together is imported on its own since it depends on the
extraction service.
"""

from titlesplit.calculations import seller, buyer, financing, results

__all__ = ["seller", "buyer", "financing", "results"]
