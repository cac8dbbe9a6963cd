"""
Infrastructure Package
======================

Provides abstraction layers for external dependencies following the Dependency Inversion Principle.

Modules:
    - payments: Payment provider abstraction (Stripe, in-memory mock)
    - container: Service locator wiring providers into domain services

This package enables:
    - Easy testing with mock implementations
    - Switching between providers without code changes
"""
