"""Validators for share proposals."""

from sharing.validators.share_validators import (
    validate_no_active_share,
    validate_share_participants,
    validate_shareable_appointment,
    validate_split_percentage,
    validate_walkers_connected,
)

__all__ = [
    "validate_no_active_share",
    "validate_share_participants",
    "validate_shareable_appointment",
    "validate_split_percentage",
    "validate_walkers_connected",
]
