"""
Kitchen Compliance Services
===========================

Services for the shared-kitchen compliance verification engine.

Services:
- regulatory_intelligence: jurisdictions, requirement catalog, change detection
- verification: rule evaluation, outcomes, verification runs and cascades
"""

__all__ = [
    "regulatory_intelligence",
    "verification",
]
