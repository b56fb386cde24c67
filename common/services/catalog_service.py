from typing import Any, Dict, Mapping, Optional, Tuple
import time
from decimal import Decimal, InvalidOperation
from uuid import uuid4

from sqlalchemy import or_
from sqlalchemy.orm import Session, aliased, joinedload

from ..models.category import Category, CategoryType
from ..models.news import News
from ..models.product import Product
from ..models.service import Service
from ..utils.dto import to_news_dto, to_product_dto, to_service_dto
from ..utils.pagination import normalize_paging
from ..utils.validators import optional_str, parse_int
from .errors import ConflictError, InvalidArgumentError, NotFoundError
from .logging import log_event


CATEGORY_TYPE_MESSAGES = {
    CategoryType.PRODUCT: "Danh mục phải thuộc loại sản phẩm",
    CategoryType.SERVICE: "Danh mục phải thuộc loại dịch vụ",
    CategoryType.NEWS: "Danh mục phải thuộc loại tin tức",
}


def _category_filter(q, model, category: str):
    """Match a category by id or slug, including its direct subcategories."""

    cat = aliased(Category)
    parent = aliased(Category)
    return (
        q.join(cat, cat.id == model.category_id)
        .outerjoin(parent, parent.id == cat.parent_id)
        .filter(
            or_(
                cat.id == category,
                cat.slug == category,
                parent.id == category,
                parent.slug == category,
            )
        )
    )


def _price(value: Any, field: str, *, required: bool) -> Optional[Decimal]:
    if value is None or value == "":
        if required:
            raise InvalidArgumentError(f"{field} là bắt buộc")
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidArgumentError(f"{field} không hợp lệ") from None
    if amount < 0:
        raise InvalidArgumentError(f"{field} phải là số dương")
    return amount


class CatalogService:
    """Storefront catalog: products, services and news.

    Responsibilities:
    - List/search products with pagination and optional category filter
    - Get single product detail by id or slug
    - Admin create/update of products (invalidating the listing cache), services and news
    """

    # naive in-process cache: key -> (ts, result)
    _cache_ttl_seconds: int = 60

    def __init__(self, session_factory, cache_ttl_seconds: Optional[int] = None):
        self._session_factory = session_factory
        self._cache: Dict[Tuple, Tuple[float, Dict]] = {}
        if cache_ttl_seconds is not None:
            self._cache_ttl_seconds = cache_ttl_seconds

    def list_products(
        self,
        *,
        query: Optional[str] = None,
        category: Optional[str] = None,
        featured: bool = False,
        in_stock: bool = False,
        page: Any = 1,
        page_size: Any = 20,
    ) -> Dict:
        """Return dict: { items: [ProductDTO], page, page_size, total }"""
        p, ps = normalize_paging(page, page_size)
        cache_key = (query or "", category or "", bool(featured), bool(in_stock), p, ps)
        now = time.time()
        cached = self._cache.get(cache_key)
        if cached and now - cached[0] < self._cache_ttl_seconds:
            return cached[1]

        with self._session_factory() as session:
            q = session.query(Product).filter(Product.is_active.is_(True))
            if query:
                like = f"%{query}%"
                q = q.filter(
                    or_(
                        Product.name.ilike(like),
                        Product.description.ilike(like),
                        Product.slug.ilike(like),
                    )
                )
            if category:
                q = _category_filter(q, Product, category)
            if featured:
                q = q.filter(Product.featured.is_(True))
            if in_stock:
                q = q.filter(Product.in_stock.is_(True))
            total = q.count()
            rows = (
                q.options(joinedload(Product.category))
                .order_by(Product.sort_order.desc(), Product.created_at.desc(), Product.name)
                .offset((p - 1) * ps)
                .limit(ps)
                .all()
            )
            result = {"items": [to_product_dto(r) for r in rows], "page": p, "page_size": ps, "total": total}
            self._cache[cache_key] = (now, result)
            return result

    def get_product(self, id_or_slug: str) -> Dict:
        """Return ProductDTO for an active product, looked up by id or slug."""
        with self._session_factory() as session:
            r = (
                session.query(Product)
                .options(joinedload(Product.category))
                .filter(or_(Product.id == id_or_slug, Product.slug == id_or_slug), Product.is_active.is_(True))
                .first()
            )
            if not r:
                raise NotFoundError("Sản phẩm không tồn tại")
            return to_product_dto(r)

    def list_services(self, *, category: Optional[str] = None, featured: bool = False) -> Dict:
        with self._session_factory() as session:
            q = session.query(Service).filter(Service.is_active.is_(True))
            if category:
                q = _category_filter(q, Service, category)
            if featured:
                q = q.filter(Service.featured.is_(True))
            rows = q.options(joinedload(Service.category)).order_by(Service.sort_order.desc(), Service.name).all()
            return {"items": [to_service_dto(r) for r in rows], "total": len(rows)}

    def list_news(self, *, category: Optional[str] = None, limit: Any = 10) -> Dict:
        _, ps = normalize_paging(1, limit, max_page_size=50)
        with self._session_factory() as session:
            q = session.query(News).filter(News.is_active.is_(True))
            if category:
                q = _category_filter(q, News, category)
            rows = q.options(joinedload(News.category)).order_by(News.created_at.desc()).limit(ps).all()
            return {"items": [to_news_dto(r) for r in rows], "total": len(rows)}

    def create_product(self, data: Mapping[str, Any]) -> Dict:
        fields = self._clean_product(data)
        with self._session_factory() as session:
            self._check_slug_and_category(session, Product, fields, CategoryType.PRODUCT)
            prod = Product(id=str(uuid4()), **fields)
            session.add(prod)
            session.flush()
            log_event("info", "product.created", product_id=prod.id, slug=prod.slug)
            dto = to_product_dto(prod)
        self.invalidate_cache()
        return dto

    def update_product(self, product_id: str, data: Mapping[str, Any]) -> Dict:
        fields = self._clean_product(data)
        with self._session_factory() as session:
            prod = session.query(Product).filter(Product.id == product_id).first()
            if not prod:
                raise NotFoundError("Sản phẩm không tồn tại")
            self._check_slug_and_category(session, Product, fields, CategoryType.PRODUCT, exclude_id=prod.id)
            for key, value in fields.items():
                setattr(prod, key, value)
            session.flush()
            log_event("info", "product.updated", product_id=prod.id)
            dto = to_product_dto(prod)
        self.invalidate_cache()
        return dto

    def create_service(self, data: Mapping[str, Any]) -> Dict:
        fields = self._clean_service(data)
        with self._session_factory() as session:
            self._check_slug_and_category(session, Service, fields, CategoryType.SERVICE)
            row = Service(id=str(uuid4()), **fields)
            session.add(row)
            session.flush()
            log_event("info", "service.created", service_id=row.id, slug=row.slug)
            return to_service_dto(row)

    def update_service(self, service_id: str, data: Mapping[str, Any]) -> Dict:
        fields = self._clean_service(data)
        with self._session_factory() as session:
            row = session.query(Service).filter(Service.id == service_id).first()
            if not row:
                raise NotFoundError("Dịch vụ không tồn tại")
            self._check_slug_and_category(session, Service, fields, CategoryType.SERVICE, exclude_id=row.id)
            for key, value in fields.items():
                setattr(row, key, value)
            session.flush()
            log_event("info", "service.updated", service_id=row.id)
            return to_service_dto(row)

    def create_news(self, data: Mapping[str, Any]) -> Dict:
        fields = self._clean_news(data)
        with self._session_factory() as session:
            self._check_slug_and_category(session, News, fields, CategoryType.NEWS)
            row = News(id=str(uuid4()), **fields)
            session.add(row)
            session.flush()
            log_event("info", "news.created", news_id=row.id, slug=row.slug)
            return to_news_dto(row)

    def update_news(self, news_id: str, data: Mapping[str, Any]) -> Dict:
        fields = self._clean_news(data)
        with self._session_factory() as session:
            row = session.query(News).filter(News.id == news_id).first()
            if not row:
                raise NotFoundError("Tin tức không tồn tại")
            self._check_slug_and_category(session, News, fields, CategoryType.NEWS, exclude_id=row.id)
            for key, value in fields.items():
                setattr(row, key, value)
            session.flush()
            log_event("info", "news.updated", news_id=row.id)
            return to_news_dto(row)

    def invalidate_cache(self) -> None:
        self._cache.clear()

    @staticmethod
    def _clean_product(data: Mapping[str, Any]) -> Dict[str, Any]:
        name = optional_str(data.get("name"))
        if not name:
            raise InvalidArgumentError("Tên sản phẩm là bắt buộc")
        slug = optional_str(data.get("slug"))
        if not slug:
            raise InvalidArgumentError("Slug là bắt buộc")
        images = data.get("images") or []
        if not isinstance(images, list) or not all(isinstance(i, dict) and i.get("url") for i in images):
            raise InvalidArgumentError("Danh sách ảnh không hợp lệ")
        return {
            "name": name,
            "slug": slug.lower(),
            "description": optional_str(data.get("description")),
            "long_description": optional_str(data.get("longDescription")),
            "price": _price(data.get("price"), "Giá", required=True),
            "sale_price": _price(data.get("salePrice"), "Giá khuyến mãi", required=False),
            "in_stock": bool(data.get("inStock", True)),
            "featured": bool(data.get("featured", False)),
            "is_active": bool(data.get("isActive", True)),
            "images": [{"url": i["url"], "alt": i.get("alt")} for i in images],
            "specs": optional_str(data.get("specs")),
            "category_id": optional_str(data.get("categoryId")),
            "meta_title": optional_str(data.get("metaTitle")),
            "meta_description": optional_str(data.get("metaDescription")),
            "meta_keywords": optional_str(data.get("metaKeywords")),
        }

    @staticmethod
    def _clean_service(data: Mapping[str, Any]) -> Dict[str, Any]:
        name = optional_str(data.get("name"))
        if not name:
            raise InvalidArgumentError("Tên dịch vụ là bắt buộc")
        slug = optional_str(data.get("slug"))
        if not slug:
            raise InvalidArgumentError("Slug là bắt buộc")
        return {
            "name": name,
            "slug": slug.lower(),
            "description": optional_str(data.get("description")),
            "price": _price(data.get("price"), "Giá", required=False),
            "image_url": optional_str(data.get("imageUrl")),
            "category_id": optional_str(data.get("categoryId")),
            "featured": bool(data.get("featured", False)),
            "is_active": bool(data.get("isActive", True)),
            "sort_order": parse_int(data.get("order"), "Thứ tự"),
        }

    @staticmethod
    def _clean_news(data: Mapping[str, Any]) -> Dict[str, Any]:
        title = optional_str(data.get("title"))
        if not title:
            raise InvalidArgumentError("Tiêu đề là bắt buộc")
        slug = optional_str(data.get("slug"))
        if not slug:
            raise InvalidArgumentError("Slug là bắt buộc")
        content = optional_str(data.get("content"))
        if not content:
            raise InvalidArgumentError("Nội dung là bắt buộc")
        return {
            "title": title,
            "slug": slug.lower(),
            "summary": optional_str(data.get("summary")),
            "content": content,
            "image_url": optional_str(data.get("imageUrl")),
            "category_id": optional_str(data.get("categoryId")),
            "is_active": bool(data.get("isActive", True)),
        }

    @staticmethod
    def _check_slug_and_category(
        session: Session,
        model,
        fields: Dict[str, Any],
        category_type: CategoryType,
        exclude_id: Optional[str] = None,
    ) -> None:
        q = session.query(model.id).filter(model.slug == fields["slug"])
        if exclude_id:
            q = q.filter(model.id != exclude_id)
        if q.first() is not None:
            raise ConflictError("Slug đã tồn tại")
        if fields["category_id"]:
            cat = session.query(Category).filter(Category.id == fields["category_id"]).first()
            if cat is None:
                raise NotFoundError("Không tìm thấy danh mục")
            if cat.type != category_type:
                raise InvalidArgumentError(CATEGORY_TYPE_MESSAGES[category_type])
