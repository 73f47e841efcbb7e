"""Database models — re-exports all models.

Import from here:  from rfq_tracker.models import User, Rfq, ...
Or from submodules: from rfq_tracker.models.rfq import Rfq
"""

from .base import Base  # noqa: F401

# Auth & Users
from .auth import User  # noqa: F401

# RFQs and their sub-records
from .rfq import (  # noqa: F401
    COMMUNICATION_TYPES,
    DIRECTIONS,
    NOTE_TYPES,
    STAGES,
    STATUSES,
    URGENCIES,
    Rfq,
    RfqActivity,
    RfqCommunication,
    RfqCounter,
    RfqNote,
)
