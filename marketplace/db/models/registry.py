# marketplace/db/models/registry.py
# Importing this module registers every mapped class on Base.metadata.
from marketplace.db.models.user import Role, User, user_roles  # noqa: F401
from marketplace.db.models.category import Category  # noqa: F401
from marketplace.db.models.service import Service  # noqa: F401
from marketplace.db.models.booking import Booking, TimeSlot  # noqa: F401
from marketplace.db.models.recruiter import (  # noqa: F401
    Recruiter,
    RecruiterEvent,
    RecruiterInvitation,
)
from marketplace.db.models.provider_profile import (  # noqa: F401
    ProviderCommission,
    ProviderDocument,
    ProviderProfile,
)
