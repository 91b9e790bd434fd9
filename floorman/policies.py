"""
Per document type reconciliation policy.

One engine serves all six workflows; the differences between them live in
this table and nowhere else.

    from floorman.policies import get_policy
    policy = get_policy(DocumentType.PICKING)
    policy.cell_scoped  # True
"""

from dataclasses import dataclass, fields, replace

from floorman.conf import floorman_settings
from floorman.models.enums import DocumentType


@dataclass(frozen=True)
class DocumentPolicy:
    """Flags that differentiate one workflow from another."""

    doc_type: DocumentType

    # Exceeding plan needs confirmed=True from the caller
    surplus_requires_confirmation: bool = True

    # Cell is scanned first, then products restricted to that cell
    cell_scoped: bool = False

    # Cell scans are meaningful at all
    uses_cells: bool = False

    # Lines without a cell take the scanned one (placement)
    assigns_cell: bool = False

    # Unknown codes become placeholder lines with plan 0
    blind_count: bool = False

    # Placeholders may only be created after a cell was scanned
    blind_count_needs_cell: bool = False

    # Picking route advances by itself once a step is complete
    auto_advance: bool = False

    # Placement list is filtered to the locked zone
    zone_filter: bool = False

    # Document type created from this one on completion
    follow_on: DocumentType | None = None


POLICIES: dict[DocumentType, DocumentPolicy] = {
    DocumentType.RECEIVING: DocumentPolicy(
        doc_type=DocumentType.RECEIVING,
        follow_on=DocumentType.PLACEMENT,
    ),
    DocumentType.PLACEMENT: DocumentPolicy(
        doc_type=DocumentType.PLACEMENT,
        cell_scoped=True,
        uses_cells=True,
        assigns_cell=True,
        zone_filter=True,
    ),
    DocumentType.PICKING: DocumentPolicy(
        doc_type=DocumentType.PICKING,
        cell_scoped=True,
        uses_cells=True,
        auto_advance=True,
    ),
    DocumentType.SHIPMENT: DocumentPolicy(
        doc_type=DocumentType.SHIPMENT,
    ),
    DocumentType.RETURN: DocumentPolicy(
        doc_type=DocumentType.RETURN,
        surplus_requires_confirmation=False,
        blind_count=True,
    ),
    DocumentType.INVENTORY: DocumentPolicy(
        doc_type=DocumentType.INVENTORY,
        surplus_requires_confirmation=False,
        uses_cells=True,
        blind_count=True,
        blind_count_needs_cell=True,
    ),
}

# Flags that settings may override per document type
OVERRIDABLE = frozenset({'surplus_requires_confirmation', 'auto_advance', 'zone_filter'})


def get_policy(doc_type) -> DocumentPolicy:
    """
    Policy for a document type with FLOORMAN['POLICY_OVERRIDES'] applied.

    Raises:
        ValueError: unknown document type
    """
    doc_type = DocumentType(doc_type)
    policy = POLICIES[doc_type]
    overrides = floorman_settings.POLICY_OVERRIDES.get(doc_type.value, {})
    known = {f.name for f in fields(DocumentPolicy)} & OVERRIDABLE
    changes = {k: v for k, v in overrides.items() if k in known}
    return replace(policy, **changes) if changes else policy
