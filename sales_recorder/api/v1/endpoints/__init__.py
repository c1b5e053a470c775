"""
API v1 Endpoints Package
"""
