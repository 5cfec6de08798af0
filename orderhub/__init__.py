"""
                Orderhub

Multi-tenant restaurant ordering backend: storefront checkout,
operator portal, and webhook reconciliation against the payment
processor and the delivery-dispatch provider.
"""

__version__ = "1.0.0"
