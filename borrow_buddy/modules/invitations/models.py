# Supabase table: group_invites
# Personal and general invites share this table

"""
group_invites:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null)
- email: text (not null) - invitee email, or '*' for the group's reusable link invite
- invite_code: text (not null)
- created_by: uuid (foreign key to profiles.id, not null)
- created_at: timestamp (default: now())
- expires_at: timestamp (default: now() + 7 days) - only enforced when INVITE_EXPIRY_ENFORCED is set
"""

GROUP_INVITES_TABLE = "group_invites"

GENERAL_INVITE_EMAIL = "*"

UNIQUE_VIOLATION = "23505"
