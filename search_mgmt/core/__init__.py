"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Endpoints, API versions, service limits, poll defaults
- exceptions: Custom exception hierarchy
- ingress: HTTP request-body parsing for the Functions app
"""
