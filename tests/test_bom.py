from decimal import Decimal
import pytest
from dao import bom as bom_dao
from dao import quotation as quotation_dao
from dao.errors import RecordNotFound


def test_availability_reports_shortage_per_line(factory):
    p = factory.product()
    flour = factory.material(stock=150, name="Flour")
    sugar = factory.material(stock=10, name="Sugar")
    factory.bom(p, flour, 2)
    factory.bom(p, sugar, "0.5")

    result = bom_dao.check_availability(p.id, 60)

    assert result["has_bom"] is True
    assert result["fully_available"] is False
    by_name = {ln["name"]: ln for ln in result["lines"]}
    assert by_name["Flour"]["required"] == Decimal("120")
    assert by_name["Flour"]["is_available"] is True
    assert by_name["Sugar"]["required"] == Decimal("30")
    assert by_name["Sugar"]["shortage"] == Decimal("20")


def test_product_without_bom_is_fully_available(factory):
    p = factory.product()
    result = bom_dao.check_availability(p.id, 5)
    assert result["has_bom"] is False
    assert result["lines"] == []
    assert result["fully_available"] is True


def test_availability_rejects_bad_input(factory):
    p = factory.product()
    with pytest.raises(ValueError):
        bom_dao.check_availability(p.id, 0)
    with pytest.raises(RecordNotFound):
        bom_dao.check_availability(9999, 1)


def test_requirements_aggregate_across_products(factory):
    a, b = factory.product(), factory.product()
    m = factory.material(stock=10)
    factory.bom(a, m, 2)
    factory.bom(b, m, 3)

    req = bom_dao.material_requirements([(a.id, 4), (b.id, 1)])

    assert req == {m.id: Decimal("11")}
    assert bom_dao.shortages(req) == [
        {"raw_material_id": m.id, "name": m.name, "required": Decimal("11"), "available": Decimal("10")}
    ]


def test_quotation_availability_falls_back_to_production(factory):
    p = factory.product(stock=4)
    m = factory.material(stock=100)
    factory.bom(p, m, 1)
    q = quotation_dao.create_quotation(
        "Acme", [{"product_id": p.id, "quantity": 10, "unit_price": 5}]
    )

    rows = bom_dao.check_quotation_availability(q.id)

    assert len(rows) == 1
    assert rows[0]["can_fulfil"] is False
    # only the part stock cannot cover is checked against the BOM
    assert rows[0]["production"]["quantity"] == Decimal("6")
    assert rows[0]["production"]["fully_available"] is True
