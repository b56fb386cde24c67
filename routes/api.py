"""Public storefront JSON API."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, make_response, request, session

from common.services.cart_identity import CartOwner, resolve_cart_owner
from common.services.errors import InvalidArgumentError


api_bp = Blueprint("shop_api", __name__, url_prefix="/api")


def _components() -> Dict[str, Any]:
    return current_app.extensions["shop_components"]


def _config():
    return current_app.config["SHOP_CONFIG"]


def _flag(name: str, default: bool = False) -> bool:
    value = request.args.get(name)
    if value is None:
        return default
    return value.strip().lower() == "true"


def _json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise InvalidArgumentError("Dữ liệu gửi lên không hợp lệ")
    return payload


def _owner() -> CartOwner:
    cfg = _config().app
    return resolve_cart_owner(request.cookies.get(cfg.cart_cookie_name), session.get("user_id"))


def _cart_response(payload: Dict[str, Any], owner: CartOwner, new_session_id: Optional[str] = None, status: int = 200):
    """JSON response that issues or retires the cart ownership cookie.

    Only called after the service call returned, i.e. after its transaction
    committed, so a failed cart creation never hands out a cookie.
    """

    resp = make_response(jsonify(payload), status)
    cfg = _config().app
    if new_session_id:
        resp.set_cookie(
            cfg.cart_cookie_name,
            new_session_id,
            max_age=cfg.cart_cookie_max_age,
            path="/",
            httponly=True,
            secure=cfg.cart_cookie_secure,
            samesite="Lax",
        )
    elif owner.has_guest_token:
        # the guest cart now lives under the user id
        resp.delete_cookie(cfg.cart_cookie_name, path="/")
    return resp


@api_bp.get("/cart")
def get_cart():
    owner = _owner()
    result = _components()["cart_service"].get_cart(owner)
    return _cart_response(result["cart"], owner)


@api_bp.post("/cart")
def add_to_cart():
    body = _json_body()
    owner = _owner()
    result = _components()["cart_service"].add_item(
        owner,
        product_id=body.get("productId"),
        quantity=body.get("quantity"),
        options=body.get("options"),
    )
    return _cart_response(
        {"message": "Đã thêm sản phẩm vào giỏ hàng", "cartItem": result["cart_item"], "cart": result["cart"]},
        owner,
        result["new_session_id"],
    )


@api_bp.put("/cart")
def update_cart():
    body = _json_body()
    owner = _owner()
    result = _components()["cart_service"].update_item(
        owner,
        product_id=body.get("productId"),
        quantity=body.get("quantity"),
    )
    return _cart_response(
        {"message": "Đã cập nhật giỏ hàng", "cartItem": result["cart_item"], "cart": result["cart"]},
        owner,
        result["new_session_id"],
    )


@api_bp.delete("/cart")
def delete_from_cart():
    owner = _owner()
    cart_service = _components()["cart_service"]
    if request.args.get("clear") == "true":
        result = cart_service.clear(owner)
        return _cart_response({"message": "Đã xóa toàn bộ giỏ hàng", "cart": result["cart"]}, owner)

    result = cart_service.remove_item(owner, product_id=request.args.get("productId"))
    return _cart_response({"message": "Đã xóa sản phẩm khỏi giỏ hàng", "cart": result["cart"]}, owner)


@api_bp.post("/checkout")
def checkout():
    body = _json_body()
    owner = _owner()
    order = _components()["order_service"].checkout(owner, body, request_id=body.get("requestId"))
    resp = make_response(jsonify({"success": True, "order": order}), 201)
    if owner.session_id:
        resp.delete_cookie(_config().app.cart_cookie_name, path="/")
    return resp


@api_bp.get("/orders/<order_id>")
def get_order(order_id: str):
    order = _components()["order_service"].get_order_for(_owner(), order_id, phone=request.args.get("phone"))
    return jsonify(order)


@api_bp.get("/categories")
def list_categories():
    data = _components()["category_service"].list_by_type(
        request.args.get("type"),
        active_only=_flag("activeOnly"),
        hierarchical=_flag("hierarchical"),
        parent_id=request.args.get("parentId"),
    )
    return jsonify(data)


@api_bp.get("/categories/<category_id>")
def get_category(category_id: str):
    return jsonify(_components()["category_service"].get(category_id))


@api_bp.get("/products")
def list_products():
    data = _components()["catalog_service"].list_products(
        query=request.args.get("q"),
        category=request.args.get("category"),
        featured=_flag("featured"),
        in_stock=_flag("inStock"),
        page=request.args.get("page", 1),
        page_size=request.args.get("pageSize", 20),
    )
    return jsonify(data)


@api_bp.get("/products/<id_or_slug>")
def get_product(id_or_slug: str):
    return jsonify(_components()["catalog_service"].get_product(id_or_slug))


@api_bp.get("/services")
def list_services():
    data = _components()["catalog_service"].list_services(
        category=request.args.get("category"),
        featured=_flag("featured"),
    )
    return jsonify(data)


@api_bp.get("/news")
def list_news():
    data = _components()["catalog_service"].list_news(
        category=request.args.get("category"),
        limit=request.args.get("limit", 10),
    )
    return jsonify(data)


@api_bp.get("/testimonials")
def list_testimonials():
    return jsonify(_components()["content_service"].list_testimonials(limit=request.args.get("limit", 100)))


@api_bp.get("/partners")
def list_partners():
    return jsonify(_components()["content_service"].list_partners())


@api_bp.get("/team")
def list_team():
    return jsonify(_components()["content_service"].list_team())


@api_bp.post("/contact")
def submit_contact():
    contact = _components()["content_service"].submit_contact(_json_body())
    return jsonify({"success": True, "message": "Cảm ơn bạn đã liên hệ, chúng tôi sẽ phản hồi sớm", "contact": contact}), 201
