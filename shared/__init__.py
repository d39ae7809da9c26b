"""
Shared utilities for the Eligibility Atom engine.

This package aggregates common building blocks consumed by the engine
and by any thin API layer built on top of it:

- config: Engine configuration via pydantic-settings
- logging: Structured logging with explicit request binding
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- test_helpers: Factories for atoms and request contexts used in tests

Any cross-component logic should live here to avoid import cycles across
service packages. Only test_helpers may import from service_* packages.
"""
