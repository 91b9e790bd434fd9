"""
Floor services — the scan reconciliation engine, one module per concern.

    from floorman.services import ScanResolver, LineReconciler, RouteEngine
"""

from floorman.services.discrepancy import DiscrepancyReport, classify, report
from floorman.services.lifecycle import DocumentLifecycle, FinishResult, FollowOnRequest
from floorman.services.proximity import ZoneProximityRanker
from floorman.services.reconciler import (
    CompletionCooldown,
    LineReconciler,
    apply_delta,
    derive_status,
)
from floorman.services.resolver import ScanContext, ScanResolver
from floorman.services.route import AdvanceTicket, RouteEngine, RouteStep
from floorman.services.session import OutcomeKind, ScanOutcome, ScanSession

__all__ = [
    'ScanResolver',
    'ScanContext',
    'LineReconciler',
    'CompletionCooldown',
    'apply_delta',
    'derive_status',
    'classify',
    'report',
    'DiscrepancyReport',
    'RouteEngine',
    'RouteStep',
    'AdvanceTicket',
    'ZoneProximityRanker',
    'DocumentLifecycle',
    'FinishResult',
    'FollowOnRequest',
    'ScanSession',
    'ScanOutcome',
    'OutcomeKind',
]
