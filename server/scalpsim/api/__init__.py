"""
API package for the scalp simulation backend.

Endpoints are organized by functionality:
- simulation: Photo validation and hair restoration simulation
- system: Health check
"""
