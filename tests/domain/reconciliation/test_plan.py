from __future__ import annotations

from teamsync.domain.reconciliation import (
    ActionKind,
    EntityState,
    EntityTypeSpec,
    FieldChange,
    build_plan,
    diff_entity_type,
)
from teamsync.domain.reconciliation.plan import normalize
from tests.support.providers import GROUP, MEMBERSHIP, states

DELETABLE = EntityTypeSpec(name="thing", tracked_fields=("size", "colour"))
ADDITION_ONLY = EntityTypeSpec(name="thing", tracked_fields=("size", "colour"), allow_delete=False)


def _desired() -> dict[tuple[str], EntityState]:
    return {
        ("a",): EntityState({"size": 1, "colour": "red"}),
        ("b",): EntityState({"size": 2, "colour": "blue"}),
    }


def _observed(b_colour: str = "blue") -> dict[tuple[str], EntityState]:
    return {
        ("b",): EntityState({"size": 2, "colour": b_colour}, handle="id-b"),
        ("c",): EntityState({"size": 3, "colour": "green"}, handle="id-c"),
    }


def test_missing_entity_is_created_and_extra_entity_deleted() -> None:
    actions, advisories = diff_entity_type("p", DELETABLE, _desired(), _observed())

    assert [(a.kind, a.key) for a in actions] == [
        (ActionKind.CREATE, ("a",)),
        (ActionKind.DELETE, ("c",)),
    ]
    assert advisories == []
    assert actions[1].handle == "id-c"


def test_addition_only_types_report_instead_of_deleting() -> None:
    actions, advisories = diff_entity_type("p", ADDITION_ONLY, _desired(), _observed())

    assert [(a.kind, a.key) for a in actions] == [(ActionKind.CREATE, ("a",))]
    assert [advisory.key for advisory in advisories] == [("c",)]


def test_protected_entities_are_reported_instead_of_deleted() -> None:
    observed = {
        ("c",): EntityState({"size": 3, "colour": "green"}, protected=True),
        ("d",): EntityState({"size": 4, "colour": "grey"}),
    }

    actions, advisories = diff_entity_type("p", DELETABLE, {}, observed)

    assert [(a.kind, a.key) for a in actions] == [(ActionKind.DELETE, ("d",))]
    assert [advisory.key for advisory in advisories] == [("c",)]
    assert advisories[0].message.endswith("it is not managed")


def test_update_carries_only_differing_fields() -> None:
    actions, _ = diff_entity_type("p", DELETABLE, _desired(), _observed(b_colour="purple"))

    (update,) = [a for a in actions if a.kind is ActionKind.UPDATE]
    assert update.key == ("b",)
    assert update.fields == {"colour": "blue"}
    assert update.changes == {"colour": FieldChange(before="purple", after="blue")}
    assert update.handle == "id-b"


def test_untracked_fields_and_handles_do_not_cause_updates() -> None:
    desired = {("b",): EntityState({"size": 2, "colour": "blue", "extra": 1})}
    observed = {("b",): EntityState({"size": 2, "colour": "blue", "extra": 2}, handle="x")}

    actions, advisories = diff_entity_type("p", DELETABLE, desired, observed)

    assert actions == []
    assert advisories == []


def test_sets_compare_without_regard_to_order() -> None:
    assert normalize({3, 1, 2}) == normalize(frozenset({2, 3, 1}))
    assert normalize([1, 2]) != normalize([2, 1])
    assert normalize({"b": 1, "a": 2}) == normalize({"a": 2, "b": 1})


def test_plan_orders_creates_updates_then_reverse_deletes() -> None:
    desired = {
        "group": states({("new",): {"description": "New"}, ("kept",): {"description": "v2"}}),
        "membership": states({("new", "alice"): {"role": "member"}}),
    }
    observed = {
        "group": states({("kept",): {"description": "v1"}, ("gone",): {"description": "Old"}}),
        "membership": states({("gone", "bob"): {"role": "member"}}),
    }

    plan = build_plan("fake", (GROUP, MEMBERSHIP), desired, observed)

    assert [(a.kind, a.entity_type, a.key) for a in plan] == [
        (ActionKind.CREATE, "group", ("new",)),
        (ActionKind.CREATE, "membership", ("new", "alice")),
        (ActionKind.UPDATE, "group", ("kept",)),
        (ActionKind.DELETE, "membership", ("gone", "bob")),
        (ActionKind.DELETE, "group", ("gone",)),
    ]


def test_plan_links_children_to_their_containers() -> None:
    desired = {
        "group": states({("new",): {"description": "New"}}),
        "membership": states({("new", "alice"): {"role": "member"}}),
    }
    observed = {
        "group": states({("gone",): {"description": "Old"}}),
        "membership": states({("gone", "bob"): {"role": "member"}}),
    }

    plan = build_plan("fake", (GROUP, MEMBERSHIP), desired, observed)
    by_key = {(a.kind, a.key): a for a in plan}

    assert by_key[(ActionKind.CREATE, ("new", "alice"))].depends_on == (
        ("create", "group", ("new",)),
    )
    assert by_key[(ActionKind.DELETE, ("gone",))].depends_on == (
        ("delete", "membership", ("gone", "bob")),
    )
    assert by_key[(ActionKind.CREATE, ("new",))].depends_on == ()


def test_required_types_are_linked_like_containers() -> None:
    grant = EntityTypeSpec(
        name="grant",
        tracked_fields=("level",),
        parent="group",
        parent_key=lambda key: key[:1],
        requires=(("project", lambda key: key[1:]),),
    )
    project = EntityTypeSpec(name="project", tracked_fields=("description",))
    desired = {
        "project": states({("site",): {"description": "Site"}}),
        "group": states({("ops",): {"description": "Ops"}}),
        "grant": states({("ops", "site"): {"level": "write"}}),
    }

    plan = build_plan("fake", (project, GROUP, grant), desired, {})
    (linked,) = [a for a in plan if a.entity_type == "grant"]

    assert linked.depends_on == (
        ("create", "group", ("ops",)),
        ("create", "project", ("site",)),
    )


def test_keys_sort_numerically_before_textually() -> None:
    spec = EntityTypeSpec(name="route", tracked_fields=("members",))
    desired = {
        ("x", 10): EntityState({"members": 1}),
        ("x", 2): EntityState({"members": 1}),
        ("a", 1): EntityState({"members": 1}),
    }

    actions, _ = diff_entity_type("p", spec, desired, {})

    assert [a.key for a in actions] == [("a", 1), ("x", 2), ("x", 10)]


def test_identical_inputs_render_identical_plans() -> None:
    def plan_text() -> tuple[str, str]:
        desired = {"group": states({("b",): {"description": "B"}, ("a",): {"description": "A"}})}
        observed = {"group": states({("c",): {"description": "C"}})}
        plan = build_plan("fake", (GROUP, MEMBERSHIP), desired, observed)
        return plan.render(), plan.to_json()

    assert plan_text() == plan_text()


def test_render_lists_changes_and_advisories() -> None:
    spec = EntityTypeSpec(name="group", tracked_fields=("members",), allow_delete=False)
    desired = {"group": {("core",): EntityState({"members": frozenset({1, 2})})}}
    observed = {
        "group": {
            ("core",): EntityState({"members": frozenset({1})}),
            ("manual",): EntityState({"members": frozenset()}),
        }
    }

    rendered = build_plan("zulip", (spec,), desired, observed).render()

    assert rendered.splitlines() == [
        "provider zulip: 1 action(s)",
        "  update group (core)",
        "    members: [1] -> [1, 2]",
        "  advisory group (manual): present in the provider but not desired; "
        "deletion is not permitted",
    ]
