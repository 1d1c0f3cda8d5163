from __future__ import annotations

import pytest
from sqlalchemy import func, select

from app.db.models import Collection, CollectionCategory, Workspace
from app.services.category_resolver import CategoryResolver
from app.services.taxonomy_loader import TaxonomyLoader
from app.services.taxonomy_store import Subcategory, TaxonomyStore
from conftest import HR_TAXONOMY_FILE


def _category_id(db_session, collection_id: int, name: str, parent_name: str | None = None) -> int:
    query = select(CollectionCategory.id).where(
        CollectionCategory.collection_id == collection_id,
        CollectionCategory.name == name,
    )
    if parent_name is not None:
        parent_id = _category_id(db_session, collection_id, parent_name)
        query = query.where(CollectionCategory.parent_id == parent_id)
    return db_session.scalar(query)


def test_taxonomy_tree_matches_seed_order(db_session, hr_collection):
    taxonomy = TaxonomyStore(db_session).get_taxonomy("HR Issues")

    assert [node.name for node in taxonomy] == [
        "Payroll",
        "Attendance",
        "Employment",
        "Benefits",
        "System Access",
        "General Inquiry",
    ]
    payroll = taxonomy[0]
    assert payroll.description is None
    assert [sub.name for sub in payroll.subcategories][:2] == ["Salary deduction", "Overtime payment"]
    assert all(sub.is_bare for sub in payroll.subcategories)

    system_access = taxonomy[4]
    assert system_access.description.startswith("Covers all issues")
    assert system_access.subcategories[3] == Subcategory(
        "Password reset", "Reset or unlock password for system account."
    )


def test_payload_keeps_bare_subcategories_as_strings(db_session, hr_collection):
    taxonomy = TaxonomyStore(db_session).get_taxonomy("HR Issues")

    payroll = taxonomy[0].to_payload()
    assert payroll["category"] == "Payroll"
    assert payroll["subcategories"][3] == "Payslip request"
    assert taxonomy[4].to_payload()["subcategories"][0] == {
        "name": "Email account issue",
        "description": "Problems with email setup, login, or company email credentials.",
    }


def test_unknown_collection_yields_empty_taxonomy(db_session, hr_collection):
    assert TaxonomyStore(db_session).get_taxonomy("Facilities") == []


def test_collection_without_rows_yields_empty_taxonomy(db_session):
    db_session.add(Collection(name="Empty"))
    db_session.commit()

    assert TaxonomyStore(db_session).get_taxonomy("Empty") == []


def test_workspace_collection_wins_over_global(db_session):
    workspace = Workspace(name="Acme")
    db_session.add(workspace)
    db_session.flush()
    global_collection = Collection(name="HR Issues")
    scoped_collection = Collection(name="HR Issues", workspace_id=workspace.id)
    db_session.add_all([global_collection, scoped_collection])
    db_session.commit()

    store = TaxonomyStore(db_session)

    assert store.find_collection("HR Issues", workspace.id).id == scoped_collection.id
    assert store.find_collection("HR Issues").id == global_collection.id


def test_resolver_returns_subcategory_id(db_session, hr_collection):
    resolver = CategoryResolver(db_session)

    category_id = resolver.resolve(hr_collection, "Payroll", "Payslip request")

    assert category_id == _category_id(db_session, hr_collection, "Payslip request", "Payroll")


@pytest.mark.parametrize(
    "category, subcategory",
    [
        ("Unknown", "X"),
        ("payroll", "Payslip request"),
        ("Payroll", "payslip request"),
        ("Attendance", "Payslip request"),
        ("Payroll", "Payroll"),
    ],
)
def test_resolver_is_exact_and_hierarchy_strict(db_session, hr_collection, category, subcategory):
    assert CategoryResolver(db_session).resolve(hr_collection, category, subcategory) is None


def test_resolver_ignores_other_collections(db_session, hr_collection):
    other = Collection(name="Other")
    db_session.add(other)
    db_session.commit()

    assert CategoryResolver(db_session).resolve(other.id, "Payroll", "Payslip request") is None


def test_loader_is_idempotent(db_session):
    loader = TaxonomyLoader(db_session)

    first = loader.load_from_file(HR_TAXONOMY_FILE)
    second = loader.load_from_file(HR_TAXONOMY_FILE)

    assert (first.categories_created, first.subcategories_created) == (6, 31)
    assert (second.categories_created, second.subcategories_created) == (0, 0)
    assert second.collection_id == first.collection_id
    assert db_session.scalar(select(func.count()).select_from(CollectionCategory)) == 37
    assert db_session.scalar(select(func.count()).select_from(Workspace)) == 1


def test_loader_adds_missing_subcategories_only(db_session, hr_collection):
    result = TaxonomyLoader(db_session).load(
        [{"category": "Payroll", "subcategories": ["Payslip request", "Reimbursement"]}],
        collection_name="HR Issues",
    )

    assert result.collection_id == hr_collection
    assert (result.categories_created, result.subcategories_created) == (0, 1)
    assert _category_id(db_session, hr_collection, "Reimbursement", "Payroll") is not None


def test_loader_rejects_malformed_file(db_session, tmp_path):
    path = tmp_path / "broken.json"
    path.write_text('{"categories": []}', encoding="utf-8")

    with pytest.raises(ValueError):
        TaxonomyLoader(db_session).load_from_file(path)
    with pytest.raises(FileNotFoundError):
        TaxonomyLoader(db_session).load_from_file(tmp_path / "missing.json")
