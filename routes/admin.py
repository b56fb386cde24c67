"""Admin back-office JSON API, guarded by the admin session flag."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request, session
from werkzeug.security import check_password_hash, generate_password_hash

from common.services.errors import InvalidArgumentError, UnauthorizedError
from common.services.logging import log_event


admin_bp = Blueprint("shop_admin", __name__, url_prefix="/admin")

PUBLIC_ENDPOINTS = {"shop_admin.login"}


def _components() -> dict:
    return current_app.extensions["shop_components"]


def _config():
    return current_app.config["SHOP_CONFIG"]


def _is_authenticated() -> bool:
    return bool(session.get("shop_admin"))


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidArgumentError("Dữ liệu gửi lên không hợp lệ")
    return payload


@admin_bp.before_request
def guard_private_routes():
    if request.endpoint in PUBLIC_ENDPOINTS:
        return None
    if not _is_authenticated():
        raise UnauthorizedError("Bạn cần đăng nhập với quyền quản trị")
    return None


@admin_bp.post("/login")
def login():
    payload = request.get_json(silent=True) or {}
    username = str(payload.get("username", "")).strip()
    password = str(payload.get("password", ""))
    cfg = _config()
    if username == cfg.admin_username and check_password_hash(cfg.admin_password_hash, password):
        session["shop_admin"] = True
        return jsonify({"status": "ok"})
    log_event("warning", "admin.login_failed", username=username)
    raise UnauthorizedError("Tên đăng nhập hoặc mật khẩu không đúng")


@admin_bp.post("/logout")
def logout():
    session.pop("shop_admin", None)
    return jsonify({"status": "ok"})


@admin_bp.post("/change-password")
def change_password():
    """Change the admin password; persisted to data/admin.json."""
    payload = _json_body()
    current_password = str(payload.get("currentPassword", ""))
    new_password = str(payload.get("newPassword", ""))
    confirm_password = str(payload.get("confirmPassword", ""))

    if not current_password or not new_password or not confirm_password:
        raise InvalidArgumentError("Vui lòng điền đầy đủ các trường")

    cfg = _config()
    if not check_password_hash(cfg.admin_password_hash, current_password):
        raise UnauthorizedError("Mật khẩu hiện tại không đúng")
    if new_password != confirm_password:
        raise InvalidArgumentError("Mật khẩu xác nhận không khớp")
    if len(new_password) < 6:
        raise InvalidArgumentError("Mật khẩu mới phải có ít nhất 6 ký tự")

    cfg.save_admin_credentials(cfg.admin_username, generate_password_hash(new_password))
    return jsonify({"status": "ok", "message": "Đã đổi mật khẩu thành công"})


@admin_bp.post("/categories")
def create_category():
    return jsonify(_components()["category_service"].create(_json_body())), 201


@admin_bp.put("/categories/<category_id>")
def update_category(category_id: str):
    return jsonify(_components()["category_service"].update(category_id, _json_body()))


@admin_bp.delete("/categories/<category_id>")
def delete_category(category_id: str):
    return jsonify(_components()["category_service"].delete(category_id))


@admin_bp.post("/products")
def create_product():
    return jsonify(_components()["catalog_service"].create_product(_json_body())), 201


@admin_bp.put("/products/<product_id>")
def update_product(product_id: str):
    return jsonify(_components()["catalog_service"].update_product(product_id, _json_body()))


@admin_bp.get("/orders")
def list_orders():
    data = _components()["order_service"].list_orders(
        status=request.args.get("status"),
        page=request.args.get("page", 1),
        page_size=request.args.get("pageSize", 20),
    )
    return jsonify(data)


@admin_bp.get("/orders/<order_id>")
def get_order(order_id: str):
    return jsonify(_components()["order_service"].get_order(order_id))


@admin_bp.post("/services")
def create_service():
    return jsonify(_components()["catalog_service"].create_service(_json_body())), 201


@admin_bp.put("/services/<service_id>")
def update_service(service_id: str):
    return jsonify(_components()["catalog_service"].update_service(service_id, _json_body()))


@admin_bp.post("/news")
def create_news():
    return jsonify(_components()["catalog_service"].create_news(_json_body())), 201


@admin_bp.put("/news/<news_id>")
def update_news(news_id: str):
    return jsonify(_components()["catalog_service"].update_news(news_id, _json_body()))


@admin_bp.get("/<any(testimonials, partners, team):kind>")
def list_content(kind: str):
    content = _components()["content_service"]
    if kind == "testimonials":
        return jsonify(content.list_testimonials(active_only=False))
    if kind == "partners":
        return jsonify(content.list_partners(active_only=False))
    return jsonify(content.list_team())


@admin_bp.post("/<any(testimonials, partners, team):kind>")
def create_content(kind: str):
    return jsonify(_components()["content_service"].create(kind, _json_body())), 201


@admin_bp.put("/<any(testimonials, partners, team):kind>/<item_id>")
def update_content(kind: str, item_id: str):
    return jsonify(_components()["content_service"].update(kind, item_id, _json_body()))


@admin_bp.delete("/<any(testimonials, partners, team):kind>/<item_id>")
def delete_content(kind: str, item_id: str):
    return jsonify(_components()["content_service"].delete(kind, item_id))


@admin_bp.get("/contacts")
def list_contacts():
    read = request.args.get("read")
    flag = None if read is None else read.strip().lower() == "true"
    return jsonify(_components()["content_service"].list_contact_messages(read=flag))


@admin_bp.patch("/contacts/<contact_id>")
def mark_contact(contact_id: str):
    payload = _json_body()
    return jsonify(_components()["content_service"].mark_contact_read(contact_id, bool(payload.get("read", True))))
