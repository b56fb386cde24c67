import pytest

from common.services.errors import InvalidArgumentError, NotFoundError


class TestShowcase:
    def test_testimonials_are_ordered_and_filtered(self, content_service):
        content_service.create("testimonials", {"name": "B", "content": "Tốt", "order": 2})
        content_service.create("testimonials", {"name": "A", "content": "Rất tốt", "order": 1, "rating": 4})
        content_service.create("testimonials", {"name": "C", "content": "Ẩn", "isActive": False})

        public = content_service.list_testimonials()
        assert [t["name"] for t in public] == ["A", "B"]
        assert public[0]["rating"] == 4
        assert public[1]["rating"] == 5
        assert len(content_service.list_testimonials(active_only=False)) == 3
        assert len(content_service.list_testimonials(limit=1)) == 1

    @pytest.mark.parametrize("rating", [0, 6, "x"])
    def test_testimonial_rating_range(self, content_service, rating):
        with pytest.raises(InvalidArgumentError):
            content_service.create("testimonials", {"name": "A", "content": "c", "rating": rating})

    def test_partners(self, content_service):
        created = content_service.create("partners", {"name": "Honda", "logoUrl": "/honda.png", "website": "https://honda.com.vn"})
        content_service.create("partners", {"name": "Yamaha", "logoUrl": "/y.png", "isActive": False})

        assert [p["name"] for p in content_service.list_partners()] == ["Honda"]
        assert created["website"] == "https://honda.com.vn"
        with pytest.raises(InvalidArgumentError):
            content_service.create("partners", {"name": "H", "logoUrl": "/h.png"})
        with pytest.raises(InvalidArgumentError):
            content_service.create("partners", {"name": "Suzuki", "logoUrl": "/s.png", "website": "suzuki"})

    def test_team_update_and_delete(self, content_service):
        member = content_service.create("team", {"name": "Minh", "position": "Thợ chính", "socialLinks": {"zalo": "0900"}})
        assert member["socialLinks"] == {"zalo": "0900"}

        updated = content_service.update("team", member["id"], {"name": "Minh", "position": "Trưởng xưởng"})
        assert updated["position"] == "Trưởng xưởng"
        assert updated["socialLinks"] == {}

        content_service.delete("team", member["id"])
        assert content_service.list_team() == []
        with pytest.raises(NotFoundError):
            content_service.delete("team", member["id"])

    def test_team_requires_position(self, content_service):
        with pytest.raises(InvalidArgumentError):
            content_service.create("team", {"name": "Minh"})

    def test_unknown_kind(self, content_service):
        with pytest.raises(NotFoundError):
            content_service.create("banners", {"name": "x"})


class TestContact:
    def test_submit_and_mark_read(self, content_service):
        msg = content_service.submit_contact(
            {"name": "Lan", "email": "lan@gmail.com", "phone": "0900", "message": "Báo giá thay lốp?"}
        )
        assert msg["read"] is False
        assert msg["email"] == "lan@gmail.com"

        assert [m["id"] for m in content_service.list_contact_messages(read=False)] == [msg["id"]]
        content_service.mark_contact_read(msg["id"])
        assert content_service.list_contact_messages(read=False) == []
        assert content_service.list_contact_messages(read=True)[0]["read"] is True

    @pytest.mark.parametrize(
        "data",
        [
            {"name": "", "email": "a@gmail.com", "message": "m"},
            {"name": "A", "email": "not-an-email", "message": "m"},
            {"name": "A", "email": "a@gmail.com", "message": "  "},
        ],
    )
    def test_submit_validation(self, content_service, data):
        with pytest.raises(InvalidArgumentError):
            content_service.submit_contact(data)

    def test_mark_unknown(self, content_service):
        with pytest.raises(NotFoundError):
            content_service.mark_contact_read("missing")
