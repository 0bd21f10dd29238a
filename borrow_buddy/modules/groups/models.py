# Supabase tables: groups, group_members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

groups:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- is_private: boolean (default: false)
- creator_id: uuid (foreign key to profiles.id, not null) - implicitly privileged
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

group_members:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null)
- user_id: uuid (foreign key to profiles.id, not null)
- role: text (not null, default: 'member') - values: admin, member
- created_at: timestamp (default: now())
- unique constraint on (group_id, user_id)
"""

GROUPS_TABLE = "groups"
GROUP_MEMBERS_TABLE = "group_members"

ROLE_MEMBER = "member"
ROLE_ADMIN = "admin"
MEMBER_ROLES = (ROLE_MEMBER, ROLE_ADMIN)
