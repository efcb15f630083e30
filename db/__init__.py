# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, SessionLocal, engine, get_db
from .enums import RESTRUCTURE_RECORD_TYPE, ModificationStatus, ModificationType
from .models import LoanModification

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "__version__",
    # Enums
    "ModificationStatus",
    "ModificationType",
    "RESTRUCTURE_RECORD_TYPE",
    # Models
    "LoanModification",
]
