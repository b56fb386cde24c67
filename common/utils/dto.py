from typing import Any, Dict, Optional

from .pricing import effective_unit_price, money


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def primary_image_url(images: Any) -> Optional[str]:
    for image in images or []:
        if isinstance(image, dict) and image.get("url"):
            return image["url"]
        if isinstance(image, str) and image:
            return image
    return None


def to_category_ref(row: Any) -> Optional[Dict]:
    if row is None:
        return None
    return {"id": row.id, "name": row.name, "slug": row.slug}


def to_category_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "slug": row.slug,
        "description": row.description,
        "type": _enum_value(row.type),
        "parentId": row.parent_id,
        "imageUrl": row.image_url,
        "isActive": bool(row.is_active),
        "createdAt": _iso(row.created_at),
        "updatedAt": _iso(row.updated_at),
    }


def to_product_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "slug": row.slug,
        "description": row.description,
        "longDescription": row.long_description,
        "price": money(row.price),
        "salePrice": money(row.sale_price) if row.sale_price is not None else None,
        "effectivePrice": money(effective_unit_price(row.price, row.sale_price)),
        "inStock": bool(row.in_stock),
        "featured": bool(row.featured),
        "isActive": bool(row.is_active),
        "images": row.images or [],
        "imageUrl": primary_image_url(row.images),
        "specs": row.specs,
        "categoryId": row.category_id,
        "category": to_category_ref(row.category),
        "metaTitle": row.meta_title,
        "metaDescription": row.meta_description,
        "metaKeywords": row.meta_keywords,
        "createdAt": _iso(row.created_at),
    }


def to_cart_product_dto(row: Any) -> Dict:
    """The slim product view embedded in cart lines."""

    return {
        "id": row.id,
        "name": row.name,
        "slug": row.slug,
        "price": money(row.price),
        "salePrice": money(row.sale_price) if row.sale_price is not None else None,
        "inStock": bool(row.in_stock),
        "imageUrl": primary_image_url(row.images),
        "category": to_category_ref(row.category),
    }


def to_service_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "slug": row.slug,
        "description": row.description,
        "price": money(row.price) if row.price is not None else None,
        "imageUrl": row.image_url,
        "featured": bool(row.featured),
        "isActive": bool(row.is_active),
        "categoryId": row.category_id,
        "category": to_category_ref(row.category),
    }


def to_news_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "title": row.title,
        "slug": row.slug,
        "summary": row.summary,
        "content": row.content,
        "imageUrl": row.image_url,
        "isActive": bool(row.is_active),
        "categoryId": row.category_id,
        "category": to_category_ref(row.category),
        "createdAt": _iso(row.created_at),
    }


def to_order_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "status": row.status,
        "customerName": row.customer_name,
        "customerPhone": row.customer_phone,
        "address": row.address,
        "city": row.city,
        "district": row.district,
        "ward": row.ward,
        "note": row.note,
        "items": row.items or [],
        "subtotal": money(row.subtotal),
        "total": money(row.total),
        "currency": row.currency,
        "createdAt": _iso(row.created_at),
    }


def to_testimonial_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "position": row.position,
        "company": row.company,
        "content": row.content,
        "rating": row.rating,
        "imageUrl": row.image_url,
        "isActive": bool(row.is_active),
        "order": row.sort_order,
        "createdAt": _iso(row.created_at),
    }


def to_partner_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "logoUrl": row.logo_url,
        "website": row.website,
        "isActive": bool(row.is_active),
        "order": row.sort_order,
    }


def to_team_member_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "position": row.position,
        "bio": row.bio,
        "imageUrl": row.image_url,
        "socialLinks": row.social_links or {},
        "order": row.sort_order,
    }


def to_contact_message_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "email": row.email,
        "phone": row.phone,
        "subject": row.subject,
        "message": row.message,
        "read": bool(row.read),
        "createdAt": _iso(row.created_at),
    }
