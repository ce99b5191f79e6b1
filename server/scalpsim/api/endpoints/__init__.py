"""
API Endpoints Package

Available Endpoints:
- simulation: POST /api/v1/validate, POST /api/v1/simulate
- system: GET /api/health
"""
