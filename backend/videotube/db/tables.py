"""
Single source of truth for database tables that exist after migrations (001).

Use these names when writing raw SQL (e.g. TRUNCATE). Alembic env.py asserts the
registered models match this list exactly.
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "users",
    "videos",
    "comments",
    "tweets",
    "notifications",
    "watch_history",
)

# Per-user activity tables; cleared by scripts/clear_user_activity.py. Order matters for FK.
USER_ACTIVITY_TABLE_NAMES = (
    "notifications",
    "watch_history",
)
