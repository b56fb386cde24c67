from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.category import Category, CategoryType
from ..models.news import News
from ..models.product import Product
from ..models.service import Service
from ..utils.dto import to_category_dto, to_category_ref
from ..utils.validators import optional_str
from .errors import ConflictError, InvalidArgumentError, NotFoundError
from .logging import log_event


# models whose rows hang off a category, keyed by the count name
ATTACHED_MODELS = {"products": Product, "services": Service, "news": News}


def parse_category_type(value: Any) -> CategoryType:
    try:
        return CategoryType(str(value).strip().upper())
    except ValueError:
        raise InvalidArgumentError("Loại danh mục không hợp lệ") from None


def build_tree(rows: List[Dict], parent_id: Optional[str] = None) -> List[Dict]:
    children: Dict[Optional[str], List[Dict]] = {}
    for row in rows:
        children.setdefault(row["parentId"], []).append(row)

    def _walk(pid: Optional[str]) -> List[Dict]:
        return [dict(row, subcategories=_walk(row["id"])) for row in children.get(pid, [])]

    return _walk(parent_id)


class CategoryService:
    """Hierarchical categories shared by products, services and news.

    Invariants enforced on every write:
    - slug is unique within a type
    - a parent has the same type as its child
    - a category is never its own ancestor
    """

    def __init__(self, session_factory, delete_policy: str = "block"):
        self._session_factory = session_factory
        self._delete_policy = delete_policy

    def list_by_type(
        self,
        category_type: Optional[Any] = None,
        *,
        active_only: bool = False,
        hierarchical: bool = False,
        parent_id: Optional[str] = None,
    ) -> List[Dict]:
        """Flat list with attached-item counts, or a tree nested under ``subcategories``.

        ``parent_id="null"`` restricts the flat list to root categories.
        """

        with self._session_factory() as session:
            q = session.query(Category)
            if category_type:
                q = q.filter(Category.type == parse_category_type(category_type))
            if active_only:
                q = q.filter(Category.is_active.is_(True))
            if not hierarchical:
                if parent_id == "null":
                    q = q.filter(Category.parent_id.is_(None))
                elif parent_id:
                    q = q.filter(Category.parent_id == parent_id)
            rows = [to_category_dto(c) for c in q.order_by(Category.name).all()]
            if hierarchical:
                root = None if parent_id in (None, "null") else parent_id
                if root is None:
                    # children whose parent was filtered out are treated as roots
                    known = {r["id"] for r in rows}
                    for r in rows:
                        if r["parentId"] not in known:
                            r["parentId"] = None
                return build_tree(rows, root)
            counts = self._counts(session, [r["id"] for r in rows])
            for r in rows:
                r["counts"] = counts.get(r["id"], {name: 0 for name in ATTACHED_MODELS})
            return rows

    @staticmethod
    def _counts(session: Session, ids: List[str]) -> Dict[str, Dict[str, int]]:
        out: Dict[str, Dict[str, int]] = {cid: {name: 0 for name in ATTACHED_MODELS} for cid in ids}
        if not ids:
            return out
        for name, model in ATTACHED_MODELS.items():
            rows = (
                session.query(model.category_id, func.count(model.id))
                .filter(model.category_id.in_(ids))
                .group_by(model.category_id)
                .all()
            )
            for cid, n in rows:
                out[cid][name] = n
        return out

    def get(self, category_id: str) -> Dict:
        with self._session_factory() as session:
            c = self._load(session, category_id)
            dto = to_category_dto(c)
            dto["parent"] = to_category_ref(c.parent)
            dto["subcategories"] = [to_category_dto(s) for s in c.subcategories]
            return dto

    def create(self, data: Mapping[str, Any]) -> Dict:
        fields = self._clean(data)
        with self._session_factory() as session:
            self._check_slug(session, fields["slug"], fields["type"])
            self._check_parent(session, None, fields["parent_id"], fields["type"])
            c = Category(id=str(uuid4()), **fields)
            session.add(c)
            session.flush()
            log_event("info", "category.created", category_id=c.id, type=c.type.value, slug=c.slug)
            return to_category_dto(c)

    def update(self, category_id: str, data: Mapping[str, Any]) -> Dict:
        fields = self._clean(data)
        with self._session_factory() as session:
            c = self._load(session, category_id)
            if fields["type"] != c.type and c.subcategories:
                raise ConflictError("Không thể đổi loại của danh mục đang có danh mục con")
            self._check_slug(session, fields["slug"], fields["type"], exclude_id=c.id)
            self._check_parent(session, c.id, fields["parent_id"], fields["type"])
            for key, value in fields.items():
                setattr(c, key, value)
            session.flush()
            log_event("info", "category.updated", category_id=c.id)
            return to_category_dto(c)

    def delete(self, category_id: str) -> Dict:
        """Detach children, apply the item policy, then remove the row."""

        with self._session_factory() as session:
            c = self._load(session, category_id)
            counts = self._counts(session, [c.id])[c.id]
            attached = sum(counts.values())
            if attached and self._delete_policy != "detach":
                raise ConflictError("Không thể xóa danh mục đang có sản phẩm, dịch vụ hoặc tin tức")

            detached_children = (
                session.query(Category)
                .filter(Category.parent_id == c.id)
                .update({Category.parent_id: None}, synchronize_session="fetch")
            )
            if attached:
                for model in ATTACHED_MODELS.values():
                    session.query(model).filter(model.category_id == c.id).update(
                        {model.category_id: None}, synchronize_session="fetch"
                    )
            session.flush()
            session.expire(c)
            session.delete(c)
            session.flush()
            log_event(
                "info",
                "category.deleted",
                category_id=category_id,
                detached_children=detached_children,
                detached_items=attached,
            )
            return {"success": True, "detachedChildren": detached_children, "detachedItems": attached}

    @staticmethod
    def _load(session: Session, category_id: str) -> Category:
        c = session.query(Category).filter(Category.id == category_id).first() if category_id else None
        if not c:
            raise NotFoundError("Không tìm thấy danh mục")
        return c

    @staticmethod
    def _clean(data: Mapping[str, Any]) -> Dict[str, Any]:
        name = optional_str(data.get("name"))
        if not name:
            raise InvalidArgumentError("Tên danh mục là bắt buộc")
        slug = optional_str(data.get("slug"))
        if not slug:
            raise InvalidArgumentError("Slug là bắt buộc")
        if not data.get("type"):
            raise InvalidArgumentError("Loại danh mục là bắt buộc")
        parent_id = optional_str(data.get("parentId"))
        if parent_id == "null":
            parent_id = None
        is_active = data.get("isActive", True)
        return {
            "name": name,
            "slug": slug.lower(),
            "description": optional_str(data.get("description")),
            "type": parse_category_type(data.get("type")),
            "parent_id": parent_id,
            "image_url": optional_str(data.get("imageUrl")),
            "is_active": bool(is_active) if is_active is not None else True,
        }

    @staticmethod
    def _check_slug(session: Session, slug: str, category_type: CategoryType, exclude_id: Optional[str] = None) -> None:
        q = session.query(Category.id).filter(Category.slug == slug, Category.type == category_type)
        if exclude_id:
            q = q.filter(Category.id != exclude_id)
        if q.first() is not None:
            raise ConflictError("Slug đã tồn tại")

    @staticmethod
    def _check_parent(
        session: Session,
        category_id: Optional[str],
        parent_id: Optional[str],
        category_type: CategoryType,
    ) -> None:
        if parent_id is None:
            return
        if category_id is not None and parent_id == category_id:
            raise InvalidArgumentError("Danh mục không thể là danh mục cha của chính nó")
        parent = session.query(Category).filter(Category.id == parent_id).first()
        if parent is None:
            raise NotFoundError("Không tìm thấy danh mục cha")
        if parent.type != category_type:
            raise InvalidArgumentError("Danh mục cha phải cùng loại")
        if category_id is None:
            return
        # walk up from the proposed parent; meeting the category means a cycle
        seen = set()
        node = parent
        while node is not None and node.id not in seen:
            if node.id == category_id:
                raise InvalidArgumentError("Không thể chọn danh mục con làm danh mục cha")
            seen.add(node.id)
            node = node.parent
