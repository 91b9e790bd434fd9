"""
Django Floorman — scan-driven warehouse floor documents.

Receiving, placement, picking, shipment, return and inventory documents
reconciled from barcode and cell scans against a local cache.

Usage:
    from floorman import floor, FloorError

    session = floor.open('picking', 'PCK-001')
    session.scan('A1-01')
    session.scan('4601234000011')
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'floor':
        from floorman.service import get_floor
        return get_floor()
    elif name == 'Floor':
        from floorman.service import Floor
        return Floor
    elif name == 'FloorError':
        from floorman.exceptions import FloorError
        return FloorError
    elif name == 'PolicyViolation':
        from floorman.exceptions import PolicyViolation
        return PolicyViolation
    elif name == 'DataUnavailable':
        from floorman.exceptions import DataUnavailable
        return DataUnavailable
    elif name == 'Document':
        from floorman.models.document import Document
        return Document
    elif name == 'Line':
        from floorman.models.line import Line
        return Line
    elif name == 'SyncAction':
        from floorman.models.sync_action import SyncAction
        return SyncAction
    elif name == 'DocumentType':
        from floorman.models.enums import DocumentType
        return DocumentType
    elif name == 'LineStatus':
        from floorman.models.enums import LineStatus
        return LineStatus
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'floor',
    'Floor',
    'FloorError',
    'PolicyViolation',
    'DataUnavailable',
    'Document',
    'Line',
    'SyncAction',
    'DocumentType',
    'LineStatus',
]

__version__ = '0.1.0'
