from typing import Any, Callable, Dict, Mapping, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from ..models.contact_message import ContactMessage
from ..models.partner import Partner
from ..models.team_member import TeamMember
from ..models.testimonial import Testimonial
from ..utils.dto import to_contact_message_dto, to_partner_dto, to_team_member_dto, to_testimonial_dto
from ..utils.validators import optional_str, parse_email, parse_int
from .errors import InvalidArgumentError, NotFoundError
from .logging import log_event


def _clean_testimonial(data: Mapping[str, Any]) -> Dict[str, Any]:
    name = optional_str(data.get("name"))
    if not name:
        raise InvalidArgumentError("Tên là bắt buộc")
    content = optional_str(data.get("content"))
    if not content:
        raise InvalidArgumentError("Nội dung là bắt buộc")
    return {
        "name": name,
        "position": optional_str(data.get("position")),
        "company": optional_str(data.get("company")),
        "content": content,
        "rating": parse_int(data.get("rating"), "Đánh giá", default=5, low=1, high=5),
        "image_url": optional_str(data.get("imageUrl")),
        "is_active": bool(data.get("isActive", True)),
        "sort_order": parse_int(data.get("order"), "Thứ tự"),
    }


def _clean_partner(data: Mapping[str, Any]) -> Dict[str, Any]:
    name = optional_str(data.get("name"))
    if not name or len(name) < 2:
        raise InvalidArgumentError("Tên phải có ít nhất 2 ký tự")
    logo = optional_str(data.get("logoUrl"))
    if not logo:
        raise InvalidArgumentError("Logo là bắt buộc")
    website = optional_str(data.get("website"))
    if website and not website.startswith(("http://", "https://")):
        raise InvalidArgumentError("Địa chỉ website không hợp lệ")
    return {
        "name": name,
        "logo_url": logo,
        "website": website,
        "is_active": bool(data.get("isActive", True)),
        "sort_order": parse_int(data.get("order"), "Thứ tự"),
    }


def _clean_team_member(data: Mapping[str, Any]) -> Dict[str, Any]:
    name = optional_str(data.get("name"))
    if not name:
        raise InvalidArgumentError("Tên là bắt buộc")
    position = optional_str(data.get("position"))
    if not position:
        raise InvalidArgumentError("Chức vụ là bắt buộc")
    links = data.get("socialLinks")
    if links is not None and (
        not isinstance(links, Mapping) or not all(isinstance(v, str) for v in links.values())
    ):
        raise InvalidArgumentError("Liên kết mạng xã hội không hợp lệ")
    return {
        "name": name,
        "position": position,
        "bio": optional_str(data.get("bio")),
        "image_url": optional_str(data.get("imageUrl")),
        "social_links": dict(links) if links else None,
        "sort_order": parse_int(data.get("order"), "Thứ tự"),
    }


class _Kind:
    def __init__(self, model, clean: Callable, to_dto: Callable, not_found: str):
        self.model = model
        self.clean = clean
        self.to_dto = to_dto
        self.not_found = not_found


# admin-managed "about us" content, keyed by URL segment
KINDS: Dict[str, _Kind] = {
    "testimonials": _Kind(Testimonial, _clean_testimonial, to_testimonial_dto, "Không tìm thấy đánh giá"),
    "partners": _Kind(Partner, _clean_partner, to_partner_dto, "Không tìm thấy đối tác"),
    "team": _Kind(TeamMember, _clean_team_member, to_team_member_dto, "Không tìm thấy thành viên"),
}


class ContentService:
    """Testimonials, partners and team members for the public pages, plus the contact inbox."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def list_testimonials(self, *, active_only: bool = True, limit: Any = 100):
        limit = parse_int(limit, "Giới hạn", default=100, low=1, high=100)
        with self._session_factory() as session:
            q = session.query(Testimonial)
            if active_only:
                q = q.filter(Testimonial.is_active.is_(True))
            rows = q.order_by(Testimonial.sort_order, Testimonial.created_at.desc()).limit(limit).all()
            return [to_testimonial_dto(r) for r in rows]

    def list_partners(self, *, active_only: bool = True):
        with self._session_factory() as session:
            q = session.query(Partner)
            if active_only:
                q = q.filter(Partner.is_active.is_(True))
            return [to_partner_dto(r) for r in q.order_by(Partner.sort_order, Partner.created_at.desc()).all()]

    def list_team(self):
        with self._session_factory() as session:
            rows = session.query(TeamMember).order_by(TeamMember.sort_order, TeamMember.name).all()
            return [to_team_member_dto(r) for r in rows]

    @staticmethod
    def _kind(kind: str) -> _Kind:
        try:
            return KINDS[kind]
        except KeyError:
            raise NotFoundError("Không tìm thấy nội dung") from None

    def create(self, kind: str, data: Mapping[str, Any]) -> Dict:
        k = self._kind(kind)
        fields = k.clean(data)
        with self._session_factory() as session:
            row = k.model(id=str(uuid4()), **fields)
            session.add(row)
            session.flush()
            log_event("info", "content.created", kind=kind, id=row.id)
            return k.to_dto(row)

    def update(self, kind: str, item_id: str, data: Mapping[str, Any]) -> Dict:
        k = self._kind(kind)
        fields = k.clean(data)
        with self._session_factory() as session:
            row = self._load(session, k, item_id)
            for key, value in fields.items():
                setattr(row, key, value)
            session.flush()
            log_event("info", "content.updated", kind=kind, id=row.id)
            return k.to_dto(row)

    def delete(self, kind: str, item_id: str) -> Dict:
        k = self._kind(kind)
        with self._session_factory() as session:
            session.delete(self._load(session, k, item_id))
            log_event("info", "content.deleted", kind=kind, id=item_id)
            return {"success": True}

    @staticmethod
    def _load(session: Session, k: _Kind, item_id: str):
        row = session.query(k.model).filter(k.model.id == item_id).first() if item_id else None
        if row is None:
            raise NotFoundError(k.not_found)
        return row

    def submit_contact(self, data: Mapping[str, Any]) -> Dict:
        name = optional_str(data.get("name"))
        if not name:
            raise InvalidArgumentError("Vui lòng nhập họ tên")
        email = parse_email(data.get("email"))
        message = optional_str(data.get("message"))
        if not message:
            raise InvalidArgumentError("Vui lòng nhập nội dung")
        with self._session_factory() as session:
            row = ContactMessage(
                id=str(uuid4()),
                name=name,
                email=email,
                phone=optional_str(data.get("phone")),
                subject=optional_str(data.get("subject")),
                message=message,
                read=False,
            )
            session.add(row)
            session.flush()
            log_event("info", "contact.received", contact_id=row.id)
            return to_contact_message_dto(row)

    def list_contact_messages(self, read: Optional[bool] = None):
        with self._session_factory() as session:
            q = session.query(ContactMessage)
            if read is not None:
                q = q.filter(ContactMessage.read.is_(read))
            return [to_contact_message_dto(r) for r in q.order_by(ContactMessage.created_at.desc()).all()]

    def mark_contact_read(self, contact_id: str, read: bool = True) -> Dict:
        with self._session_factory() as session:
            row = session.query(ContactMessage).filter(ContactMessage.id == contact_id).first()
            if row is None:
                raise NotFoundError("Không tìm thấy liên hệ")
            row.read = bool(read)
            session.flush()
            return to_contact_message_dto(row)
