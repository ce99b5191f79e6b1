"""
Core package for the scalp simulation backend.

This package contains core functionality including:
- config: Application settings and configuration
- errors: Exception taxonomy shared by services and endpoints
- prompts: Fixed prompt templates sent to the generative model
"""
