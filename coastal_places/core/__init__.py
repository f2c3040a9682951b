"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Service URLs, region filters, field names, limits
- exceptions: Custom exception hierarchy
"""
