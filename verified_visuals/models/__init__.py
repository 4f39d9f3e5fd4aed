"""
API-facing pydantic models
"""

from verified_visuals.models.reports import AudienceOption, ClientCommand, ReportRequest

__all__ = ["AudienceOption", "ClientCommand", "ReportRequest"]
