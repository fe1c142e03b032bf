"""Enumerations shared by the authorization model."""

import enum


class SystemRole(str, enum.Enum):
    """Fixed set of roles; exactly one Role row exists per value."""
    super_admin = "SuperAdmin"
    admin = "Admin"
    finance = "Finance"
    accounts = "Accounts"
    content_manager = "ContentManager"
    user = "User"


class PermissionType(str, enum.Enum):
    view = "View"
    create = "Create"
    edit = "Edit"
    delete = "Delete"
    execute = "Execute"
    admin = "Admin"


class MenuType(str, enum.Enum):
    admin = "Admin"    # left navigation of the admin console
    public = "Public"  # top navigation of the learner site


class SubscriptionType(str, enum.Enum):
    free = "Free"
    basic = "Basic"
    premium = "Premium"
    vocabulary_only = "VocabularyOnly"
    ielts_only = "IeltsOnly"
    pte_only = "PteOnly"
    gre_only = "GreOnly"
    higher_studies_only = "HigherStudiesOnly"
    all_modules = "AllModules"


# Subscription types that satisfy any specific module requirement.
SUPERSET_SUBSCRIPTIONS = frozenset({SubscriptionType.all_modules, SubscriptionType.premium})
