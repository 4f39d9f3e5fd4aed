"""
Research pipeline services: stage clients, orchestrator and provider adapters.
"""
