"""
Floorman signals.

document_completed(sender, document, report)
    A document was committed as completed. report is the DiscrepancyReport
    computed at completion.

follow_on_requested(sender, request, document)
    Completion asked for a dependent document (receiving → placement).
    document is the created follow-on, or None when
    FLOORMAN['CREATE_FOLLOW_ON'] is off and the receiver must create it.
"""

from django.dispatch import Signal

document_completed = Signal()
follow_on_requested = Signal()
