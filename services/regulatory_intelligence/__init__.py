"""
Regulatory Intelligence Service
================================

Jurisdiction hierarchy, requirement catalog and regulatory change
detection for shared-kitchen food vendors.

Features:
- Jurisdiction resolution by id, code or address
- Versioned requirement catalog with applicability filtering
- Checklist queries and coverage statistics
- Regulatory update log and clearinghouse sweep

Version: 0.1.0
"""

from services.regulatory_intelligence.catalog import RequirementCatalog
from services.regulatory_intelligence.change_detection import (
    ChangeDetector,
    ChangeSeverity,
    ClearinghouseSweep,
    DetectedChange,
    NullChangeDetector,
    SimulatedChangeDetector,
    SweepResult,
    get_change_detector,
    reset_change_detector,
    set_change_detector,
)
from services.regulatory_intelligence.hierarchy import JurisdictionHierarchy
from services.regulatory_intelligence.service import (
    ChecklistQuery,
    ChecklistResult,
    CoverageStats,
    RegulatoryIntelligenceService,
)

__version__ = "0.1.0"

__all__ = [
    "JurisdictionHierarchy",
    "RequirementCatalog",
    "RegulatoryIntelligenceService",
    "ChecklistQuery",
    "ChecklistResult",
    "CoverageStats",
    "ChangeDetector",
    "ChangeSeverity",
    "DetectedChange",
    "NullChangeDetector",
    "SimulatedChangeDetector",
    "ClearinghouseSweep",
    "SweepResult",
    "get_change_detector",
    "set_change_detector",
    "reset_change_detector",
]
