"""Model registry: importing the package registers every table on Base.metadata."""
from .authz import Base, User, RevokedToken  # noqa: F401
from .audit import AuditLog  # noqa: F401
from .hunter import Hunter, Guardian  # noqa: F401
from .permit import Permit, NumberSequence  # noqa: F401
from .tax import Tax  # noqa: F401
from .permit_request import PermitRequest  # noqa: F401
from .guide import HuntingGuide, GuideHunterAssociation  # noqa: F401
