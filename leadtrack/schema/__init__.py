"""Schema package — typed lead models and settings.

Provides the contract between the importer, the store, and the dashboard:

- models.py: Lead / LeadInput dataclasses and the Yes/No and reply-time enums
- loader.py: YAML settings serialization/deserialization
- design_system.py: Value formatting for dashboard output
"""

from .design_system import (
    NO_DATA,
    format_integer,
    format_minutes,
    format_money,
    format_multiplier,
    format_percent,
    format_ratio,
)
from .loader import ScorecardSettings, Settings, load_settings, save_settings
from .models import (
    DEFAULT_REPLY_CATEGORY,
    REPLY_CATEGORIES,
    Lead,
    LeadInput,
    ReplyTimeCategory,
    YesNo,
)

__all__ = [
    # Models
    "DEFAULT_REPLY_CATEGORY",
    "REPLY_CATEGORIES",
    "Lead",
    "LeadInput",
    "ReplyTimeCategory",
    "YesNo",
    # Settings
    "ScorecardSettings",
    "Settings",
    "load_settings",
    "save_settings",
    # Formatting
    "NO_DATA",
    "format_integer",
    "format_minutes",
    "format_money",
    "format_multiplier",
    "format_percent",
    "format_ratio",
]
