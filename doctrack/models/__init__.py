from doctrack.models.tenancy import (  # noqa: F401
    Area,
    Company,
    User,
    UserRole,
    UserStatus,
)
from doctrack.models.documents import (  # noqa: F401
    Document,
    DocumentPriority,
    DocumentStatus,
    HistoryAction,
    HistoryEntry,
    Notification,
    NotificationType,
)
