"""
Shared core: settings, logging, error taxonomy, token handling and
role checks used across the API and services.
"""
