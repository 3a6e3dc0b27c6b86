"""SQL for progress operations that the ORM does not express cleanly."""


# Last write wins for percentage and status. started_at/completed_at are only
# replaced when the caller sends them, so partial reports keep earlier stamps.
UPSERT_PROGRESS_QUERY = """
INSERT INTO user_progress (
    user_id, formation_id, progress_percentage, status,
    started_at, completed_at, last_accessed_at, updated_at
)
VALUES (
    :user_id, :formation_id, :progress_percentage, :status,
    :started_at, :completed_at, NOW(), NOW()
)
ON CONFLICT (user_id, formation_id)
DO UPDATE SET
    progress_percentage = EXCLUDED.progress_percentage,
    status = EXCLUDED.status,
    started_at = COALESCE(EXCLUDED.started_at, user_progress.started_at),
    completed_at = COALESCE(EXCLUDED.completed_at, user_progress.completed_at),
    last_accessed_at = NOW(),
    updated_at = NOW()
RETURNING id, user_id, formation_id, progress_percentage, status,
    started_at, completed_at, last_accessed_at, created_at, updated_at
"""
