"""
ORM models. Importing this package registers every table on Base.metadata.
"""

from volunteer_api.models.activity import Activity, ActivityCategory, Category, PlanActivity
from volunteer_api.models.content import ContactMessage, Notification, StoredFile
from volunteer_api.models.user import Faculty, User

__all__ = [
    "Activity",
    "ActivityCategory",
    "Category",
    "ContactMessage",
    "Faculty",
    "Notification",
    "PlanActivity",
    "StoredFile",
    "User",
]
