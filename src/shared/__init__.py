"""
Shared Layer - Cross-Cutting Concerns
Configuration, structured logging and the error contract
"""
