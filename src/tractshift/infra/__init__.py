"""
TractShift - Infrastructure Layer (HTTP cache, Census adapters, boundaries).
"""
