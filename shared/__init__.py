"""
Shared utilities for the JWKS Configurator.

This package aggregates common building blocks consumed by the validation
service and the component client:

- config: Configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI service shell (middleware, health, metrics)

Any cross-package logic should live here to avoid import cycles. Do not
import from service_* or component_client into shared/; test_helpers is
the one exception, since it builds fixtures for both.
"""
