"""
Core configuration, dependencies and application factory.
"""
