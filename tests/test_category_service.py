import pytest

from common.models.category import Category
from common.models.product import Product
from common.services.category_service import CategoryService, build_tree
from common.services.errors import ConflictError, InvalidArgumentError, NotFoundError


def _data(**overrides):
    data = {"name": "Phanh", "slug": "phanh", "type": "PRODUCT"}
    data.update(overrides)
    return data


class TestCreate:
    def test_create_with_parent(self, category_service, seed):
        created = category_service.create(_data(parentId="cat-parts"))
        assert created["parentId"] == "cat-parts"
        assert created["type"] == "PRODUCT"
        assert created["isActive"] is True

    def test_same_slug_same_type_conflicts(self, category_service, seed):
        with pytest.raises(ConflictError):
            category_service.create(_data(slug="phu-tung"))

    def test_same_slug_other_type_is_allowed(self, category_service, seed):
        created = category_service.create(_data(slug="phu-tung", type="SERVICE"))
        assert created["slug"] == "phu-tung"

    def test_parent_must_share_type(self, category_service, seed):
        with pytest.raises(InvalidArgumentError):
            category_service.create(_data(parentId="cat-repair"))

    def test_unknown_parent(self, category_service, seed):
        with pytest.raises(NotFoundError):
            category_service.create(_data(parentId="missing"))

    @pytest.mark.parametrize("field", ["name", "slug", "type"])
    def test_required_fields(self, category_service, seed, field):
        with pytest.raises(InvalidArgumentError):
            category_service.create(_data(**{field: ""}))

    def test_unknown_type(self, category_service, seed):
        with pytest.raises(InvalidArgumentError):
            category_service.create(_data(type="VIDEO"))


class TestUpdate:
    def test_cannot_be_own_parent(self, category_service, seed):
        with pytest.raises(InvalidArgumentError):
            category_service.update("cat-parts", _data(slug="phu-tung", parentId="cat-parts"))

    def test_cannot_move_under_descendant(self, category_service, seed, session_factory):
        grandchild = category_service.create(_data(slug="nhot-tong-hop", parentId="cat-oil"))

        for descendant in ("cat-oil", grandchild["id"]):
            with pytest.raises(InvalidArgumentError):
                category_service.update("cat-parts", _data(name="Phụ tùng", slug="phu-tung", parentId=descendant))
        with session_factory() as s:
            assert s.get(Category, "cat-parts").parent_id is None

    def test_reparent_to_sibling_branch(self, category_service, seed):
        other = category_service.create(_data(slug="phu-kien"))
        updated = category_service.update("cat-oil", _data(name="Dầu nhớt", slug="dau-nhot", parentId=other["id"]))
        assert updated["parentId"] == other["id"]

    def test_slug_uniqueness_excludes_self(self, category_service, seed):
        updated = category_service.update("cat-parts", _data(name="Phụ tùng xe", slug="phu-tung"))
        assert updated["name"] == "Phụ tùng xe"

    def test_slug_taken_by_other(self, category_service, seed):
        with pytest.raises(ConflictError):
            category_service.update("cat-oil", _data(slug="phu-tung", parentId="cat-parts"))

    def test_type_change_with_children_conflicts(self, category_service, seed):
        with pytest.raises(ConflictError):
            category_service.update("cat-parts", _data(slug="phu-tung", type="SERVICE"))

    def test_missing_category(self, category_service, seed):
        with pytest.raises(NotFoundError):
            category_service.update("missing", _data())


class TestList:
    def test_flat_list_with_counts(self, category_service, seed):
        rows = category_service.list_by_type("PRODUCT")
        assert [r["slug"] for r in rows] == ["dau-nhot", "phu-tung"]
        counts = {r["id"]: r["counts"] for r in rows}
        assert counts["cat-parts"] == {"products": 2, "services": 0, "news": 0}
        assert counts["cat-oil"]["products"] == 1

    def test_roots_only(self, category_service, seed):
        rows = category_service.list_by_type("PRODUCT", parent_id="null")
        assert [r["id"] for r in rows] == ["cat-parts"]

    def test_hierarchical(self, category_service, seed):
        tree = category_service.list_by_type("PRODUCT", hierarchical=True)
        assert [c["id"] for c in tree] == ["cat-parts"]
        assert [c["id"] for c in tree[0]["subcategories"]] == ["cat-oil"]
        assert tree[0]["subcategories"][0]["subcategories"] == []

    def test_active_only(self, category_service, seed):
        category_service.update("cat-oil", _data(name="Dầu nhớt", slug="dau-nhot", parentId="cat-parts", isActive=False))
        rows = category_service.list_by_type("PRODUCT", active_only=True)
        assert [r["id"] for r in rows] == ["cat-parts"]

    def test_all_types(self, category_service, seed):
        assert len(category_service.list_by_type()) == 4

    def test_get_includes_parent_and_children(self, category_service, seed):
        parent = category_service.get("cat-parts")
        assert [c["id"] for c in parent["subcategories"]] == ["cat-oil"]
        assert category_service.get("cat-oil")["parent"]["id"] == "cat-parts"

    def test_build_tree_orphans_stay_out(self):
        rows = [{"id": "a", "parentId": None}, {"id": "b", "parentId": "a"}, {"id": "c", "parentId": "zzz"}]
        tree = build_tree(rows)
        assert [n["id"] for n in tree] == ["a"]
        assert [n["id"] for n in tree[0]["subcategories"]] == ["b"]


class TestDelete:
    def test_delete_detaches_children(self, category_service, seed, session_factory):
        empty = category_service.create(_data(slug="phu-kien"))
        child = category_service.create(_data(slug="guong", parentId=empty["id"]))

        result = category_service.delete(empty["id"])

        assert result["detachedChildren"] == 1
        with session_factory() as s:
            assert s.get(Category, empty["id"]) is None
            assert s.get(Category, child["id"]).parent_id is None

    def test_delete_with_attached_items_is_blocked(self, category_service, seed, session_factory):
        with pytest.raises(ConflictError):
            category_service.delete("cat-parts")
        with session_factory() as s:
            assert s.get(Category, "cat-parts") is not None
            assert s.get(Category, "cat-oil").parent_id == "cat-parts"

    def test_detach_policy_clears_item_references(self, session_factory, seed):
        service = CategoryService(session_factory, delete_policy="detach")

        result = service.delete("cat-parts")

        assert result["detachedItems"] == 2
        with session_factory() as s:
            assert s.get(Product, "p2").category_id is None
            assert s.get(Category, "cat-oil").parent_id is None

    def test_delete_missing(self, category_service, seed):
        with pytest.raises(NotFoundError):
            category_service.delete("missing")
