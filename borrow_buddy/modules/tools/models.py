# Supabase tables: tools, tool_categories, tool_group_visibility, tool_history
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Images live in the tool-images storage bucket

"""
tools:
- id: uuid (primary key)
- owner_id: uuid (foreign key to profiles.id, not null)
- name: text (not null)
- description: text (nullable)
- category_id: uuid (foreign key to tool_categories.id, nullable)
- condition: text (nullable) - new, excellent, good, fair, worn
- status: text (default: 'available') - available, in_use, unavailable, damaged
- brand: text (nullable)
- power_source: text (nullable) - battery, corded, gas, manual, pneumatic, hybrid
- image_url: text (nullable)
- created_at / updated_at: timestamp

tool_categories:
- id: uuid (primary key)
- name: text (unique, not null)
- created_at: timestamp

tool_group_visibility:
- id: uuid (primary key)
- tool_id: uuid (foreign key to tools.id)
- group_id: uuid (foreign key to groups.id)
- is_hidden: boolean (default: false)

tool_history:
- id: uuid (primary key)
- tool_id, request_id, borrower_id, owner_id, action_by: uuid
- action_type: text - the request status the action moved to
- start_date, end_date: date (nullable)
- actual_pickup_date, actual_return_date: timestamp (nullable)
- notes: text (nullable)
- created_at: timestamp
"""
from enum import Enum

TOOLS_TABLE = "tools"
TOOL_CATEGORIES_TABLE = "tool_categories"
TOOL_VISIBILITY_TABLE = "tool_group_visibility"
TOOL_HISTORY_TABLE = "tool_history"


class ToolStatus(str, Enum):
    AVAILABLE = "available"
    IN_USE = "in_use"
    UNAVAILABLE = "unavailable"
    DAMAGED = "damaged"


class ToolCondition(str, Enum):
    NEW = "new"
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    WORN = "worn"


class PowerSource(str, Enum):
    BATTERY = "battery"
    CORDED = "corded"
    GAS = "gas"
    MANUAL = "manual"
    PNEUMATIC = "pneumatic"
    HYBRID = "hybrid"


# Older rows use "borrowed" for a lent-out tool
LEGACY_STATUS_ALIASES = {"borrowed": ToolStatus.IN_USE.value}

DEFAULT_CATEGORIES = [
    "Power Tools",
    "Hand Tools",
    "Garden & Outdoor",
    "Automotive",
    "Kitchen Appliances",
    "Electronics",
    "Painting & Decorating",
    "Cleaning Equipment",
    "Other",
]
