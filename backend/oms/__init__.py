"""
Warehouse OMS - order placement and stock control backend
"""
__version__ = "1.0.0"
