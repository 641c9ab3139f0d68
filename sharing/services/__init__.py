"""
Sharing services module.

Services:
- split_service: covering/original split of a total
- recurrence_service: weekday matching and occurrence expansion for templates
- clone_service: one-time clones of recurring templates
- connection_service: walker connection predicate
- share_query_service: read-side share listings
- payment_status_service: mark invoices/earnings paid
"""

from sharing.services.clone_service import (
    CloneBatchResult,
    build_clone,
    clone_recurring_for_dates,
    find_live_clone,
)
from sharing.services.connection_service import are_connected
from sharing.services.payment_status_service import (
    list_unpaid_earnings,
    mark_earnings_paid,
    mark_invoices_paid,
)
from sharing.services.recurrence_service import occurs_on, upcoming_occurrences
from sharing.services.share_query_service import (
    ShareOverview,
    get_active_share,
    list_covered_appointments,
    list_shares_for_user,
)
from sharing.services.split_service import SplitAmounts, calculate_split

__all__ = [
    # Split
    "SplitAmounts",
    "calculate_split",
    # Recurrence
    "occurs_on",
    "upcoming_occurrences",
    # Clones
    "CloneBatchResult",
    "build_clone",
    "clone_recurring_for_dates",
    "find_live_clone",
    # Connections
    "are_connected",
    # Queries
    "ShareOverview",
    "get_active_share",
    "list_covered_appointments",
    "list_shares_for_user",
    # Payment status
    "list_unpaid_earnings",
    "mark_earnings_paid",
    "mark_invoices_paid",
]
