from src.database.rls_policies import POLICIES, RLS_TABLES, build_policy_statements


def test_rls_enabled_on_every_formation_table() -> None:
    statements = build_policy_statements()

    assert set(RLS_TABLES) == {
        "formations",
        "quizzes",
        "quiz_questions",
        "quiz_answers",
        "user_progress",
        "user_quiz_results",
    }
    for table in RLS_TABLES:
        assert f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY" in statements


def test_policies_are_recreated_idempotently() -> None:
    statements = build_policy_statements()

    drops = [s for s in statements if s.startswith("DROP POLICY IF EXISTS")]
    creates = [s for s in statements if s.startswith("CREATE POLICY")]
    assert len(drops) == len(creates) == len(POLICIES)


def test_roles_come_from_organization_members() -> None:
    for policy in POLICIES:
        clause = f"{policy.using or ''} {policy.with_check or ''}"
        assert "profiles.role" not in clause
        if policy.table not in ("user_progress", "user_quiz_results") or "Managers" in policy.name:
            assert "organization_members" in clause


def test_members_only_see_active_formations() -> None:
    member_view = next(p for p in POLICIES if p.table == "formations" and p.command == "SELECT")

    assert "status = 'active'" in member_view.using
