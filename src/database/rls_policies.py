"""Row Level Security policies for the formations tables.

Membership and roles are read from organization_members. The application
itself connects with a role that bypasses RLS; these policies protect direct
access through the Supabase client APIs.

Run with ``python -m src.database.rls_policies``.
"""
import asyncio
import logging
from typing import NamedTuple

from sqlalchemy.ext.asyncio import AsyncEngine

from src.database.engine import engine


logger = logging.getLogger(__name__)


def _member_orgs(*, managers_only: bool = False) -> str:
    role_filter = " AND role IN ('admin', 'owner')" if managers_only else ""
    return f"SELECT organization_id FROM organization_members WHERE user_id = auth.uid(){role_filter}"


def _org_formations(*, managers_only: bool = False) -> str:
    return f"SELECT id FROM formations WHERE organization_id IN ({_member_orgs(managers_only=managers_only)})"


def _org_quizzes(*, managers_only: bool = False) -> str:
    return (
        "SELECT q.id FROM quizzes q JOIN formations f ON f.id = q.formation_id "
        f"WHERE f.organization_id IN ({_member_orgs(managers_only=managers_only)})"
    )


def _org_questions(*, managers_only: bool = False) -> str:
    return (
        "SELECT qq.id FROM quiz_questions qq JOIN quizzes q ON q.id = qq.quiz_id "
        "JOIN formations f ON f.id = q.formation_id "
        f"WHERE f.organization_id IN ({_member_orgs(managers_only=managers_only)})"
    )


class Policy(NamedTuple):
    table: str
    name: str
    command: str
    using: str | None = None
    with_check: str | None = None


POLICIES: tuple[Policy, ...] = (
    Policy(
        "formations",
        "Members can view active formations of their organization",
        "SELECT",
        using=f"organization_id IN ({_member_orgs()}) AND status = 'active'",
    ),
    Policy(
        "formations",
        "Managers can manage formations of their organization",
        "ALL",
        using=f"organization_id IN ({_member_orgs(managers_only=True)})",
    ),
    Policy(
        "quizzes",
        "Members can view quizzes of accessible formations",
        "SELECT",
        using=f"formation_id IN ({_org_formations()})",
    ),
    Policy(
        "quizzes",
        "Managers can manage quizzes",
        "ALL",
        using=f"formation_id IN ({_org_formations(managers_only=True)})",
    ),
    Policy(
        "quiz_questions",
        "Members can view questions of accessible quizzes",
        "SELECT",
        using=f"quiz_id IN ({_org_quizzes()})",
    ),
    Policy(
        "quiz_questions",
        "Managers can manage questions",
        "ALL",
        using=f"quiz_id IN ({_org_quizzes(managers_only=True)})",
    ),
    Policy(
        "quiz_answers",
        "Members can view answers of accessible questions",
        "SELECT",
        using=f"question_id IN ({_org_questions()})",
    ),
    Policy(
        "quiz_answers",
        "Managers can manage answers",
        "ALL",
        using=f"question_id IN ({_org_questions(managers_only=True)})",
    ),
    Policy("user_progress", "Users can view their own progress", "SELECT", using="user_id = auth.uid()"),
    Policy("user_progress", "Users can insert their own progress", "INSERT", with_check="user_id = auth.uid()"),
    Policy("user_progress", "Users can update their own progress", "UPDATE", using="user_id = auth.uid()"),
    Policy(
        "user_progress",
        "Managers can view progress in their organization",
        "SELECT",
        using=f"formation_id IN ({_org_formations(managers_only=True)})",
    ),
    Policy("user_quiz_results", "Users can view their own quiz results", "SELECT", using="user_id = auth.uid()"),
    Policy(
        "user_quiz_results",
        "Users can insert their own quiz results",
        "INSERT",
        with_check="user_id = auth.uid()",
    ),
    Policy(
        "user_quiz_results",
        "Managers can view quiz results in their organization",
        "SELECT",
        using=f"quiz_id IN ({_org_quizzes(managers_only=True)})",
    ),
)

RLS_TABLES: tuple[str, ...] = tuple(dict.fromkeys(policy.table for policy in POLICIES))


def build_policy_statements(policies: tuple[Policy, ...] = POLICIES) -> list[str]:
    """Return the idempotent DDL that enables RLS and (re)creates every policy."""
    statements = [f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY" for table in RLS_TABLES]
    for policy in policies:
        statements.append(f'DROP POLICY IF EXISTS "{policy.name}" ON {policy.table}')
        ddl = f'CREATE POLICY "{policy.name}" ON {policy.table} FOR {policy.command}'
        if policy.using:
            ddl += f" USING ({policy.using})"
        if policy.with_check:
            ddl += f" WITH CHECK ({policy.with_check})"
        statements.append(ddl)
    return statements


async def apply_rls_policies(db_engine: AsyncEngine) -> None:
    """Apply every policy in a single transaction."""
    async with db_engine.begin() as conn:
        for statement in build_policy_statements():
            await conn.exec_driver_sql(statement)

    logger.info("Applied %d RLS policies on %d tables", len(POLICIES), len(RLS_TABLES))


async def main() -> None:
    from src.config.logging import setup_logging

    setup_logging()
    try:
        await apply_rls_policies(engine)
    except Exception:
        logger.exception("Applying RLS policies failed")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
