from decimal import Decimal

import pytest

from common.config import load_env, validate_currency, validate_delete_policy
from common.services.errors import ConflictError, InvalidArgumentError, NotFoundError
from common.utils.pagination import normalize_paging
from common.utils.pricing import effective_unit_price
from common.utils.validators import MAX_QUANTITY, parse_quantity, require_fields, validate_options


@pytest.mark.parametrize(
    "price, sale, expected",
    [
        (100, 80, Decimal("80")),
        (100, None, Decimal("100")),
        (100, 0, Decimal("100")),
        (100, 100, Decimal("100")),
        (100, 120, Decimal("100")),
    ],
)
def test_effective_unit_price(price, sale, expected):
    assert effective_unit_price(price, sale) == expected


def test_parse_quantity():
    assert parse_quantity("3") == 3
    assert parse_quantity(None, default=1) == 1
    assert parse_quantity(2.0) == 2
    with pytest.raises(InvalidArgumentError):
        parse_quantity("")
    assert parse_quantity(MAX_QUANTITY) == MAX_QUANTITY
    with pytest.raises(InvalidArgumentError):
        parse_quantity(MAX_QUANTITY + 1)
    with pytest.raises(InvalidArgumentError):
        parse_quantity(10**20)


def test_validate_options():
    assert validate_options(None) is None
    assert validate_options({}) is None
    assert validate_options({" color ": "red", "gift": True}) == {"color": "red", "gift": True}
    with pytest.raises(InvalidArgumentError):
        validate_options(["red"])
    with pytest.raises(InvalidArgumentError):
        validate_options({"sizes": [1, 2]})


def test_require_fields():
    assert require_fields({"a": " x "}, ["a"], "msg") == {"a": "x"}
    with pytest.raises(InvalidArgumentError, match="msg"):
        require_fields({"a": None}, ["a"], "msg")


def test_normalize_paging():
    assert normalize_paging("2", "10") == (2, 10)
    assert normalize_paging("x", None) == (1, 20)


def test_config_validation():
    assert validate_currency(None) == "VND"
    assert validate_delete_policy("DETACH") == "detach"
    with pytest.raises(ValueError):
        validate_currency("dong")
    with pytest.raises(ValueError):
        validate_delete_policy("cascade")


def test_settings_file_wins_over_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("CURRENCY", "USD")
    monkeypatch.setenv("CART_COOKIE_MAX_AGE", "60")
    settings = tmp_path / "settings.json"
    settings.write_text('{"CURRENCY": "vnd"}', encoding="utf-8")

    cfg = load_env(settings)

    assert cfg.currency == "VND"
    assert cfg.cart_cookie_max_age == 60
    assert cfg.cart_cookie_name == "cart_session_id"


def test_error_status_defaults_and_override():
    assert NotFoundError("x").status_code == 404
    assert ConflictError("x", status_code=None).status_code == 409
    assert ConflictError("x", status_code=400).status_code == 400
    assert ConflictError("x").to_dict() == {"error": "x", "kind": "Conflict"}
