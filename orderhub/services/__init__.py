"""
                        Services Module

Business logic behind the HTTP surface. External providers follow the
hybrid pattern: a Mock implementation for development and a real one for
staging/production, chosen by ENV_MODE.

Services:
    - payment: Stripe Checkout on Connect accounts
    - delivery: Nash delivery dispatch
    - reconciliation: payment and delivery webhook handling
    - checkout: fee computation and checkout session creation
    - order_status: status tables and the transition guard
    - business_hours: open/closed status in the restaurant's timezone
"""
