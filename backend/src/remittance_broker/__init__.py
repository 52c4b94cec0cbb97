"""
Remittance broker: transfer orders, identity verification and delay handling
for an agent acting on behalf of a customer.
"""

__version__ = "1.0.0"
