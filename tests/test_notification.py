import pytest
from dao import manufacturing as mo_dao
from dao import notification as notify_dao
from db.models.manufacturing import ManufacturingOrder
from db.models.notification import Notification
from db.models.user import UserRole
from dao.errors import RecordNotFound


def _short_mo(factory, quantity=10):
    p = factory.product()
    m = factory.material(stock=5, name="Lotus paste")
    factory.bom(p, m, 1)
    return mo_dao.create_mo(p.id, quantity)


def test_shortage_alert_on_create(factory):
    staff = factory.staff()

    mo = _short_mo(factory)

    rows = Notification.query.all()
    assert {n.user_id for n in rows} == {
        staff["planner"].id,
        staff["buyer"].id,
        staff["admin"].id,
    }
    assert rows[0].title == f"Material Shortage Alert - {mo.mo_number}"
    assert "Lotus paste: need 10" in rows[0].message
    assert rows[0].type == "warning"


def test_inactive_users_are_skipped(factory):
    factory.user("ghost", UserRole.ADMIN, is_active=False)
    active = factory.user("planner", UserRole.MANUFACTURE_MANAGER)
    assert notify_dao.directory.user_ids_for(notify_dao.QC_REJECTED) == [active.id]


def test_user_with_several_roles_gets_one_copy(factory):
    u = factory.user("boss", UserRole.ADMIN, UserRole.MANUFACTURE_MANAGER, UserRole.PURCHASING)
    _short_mo(factory)
    assert Notification.query.filter_by(user_id=u.id).count() == 1


def test_recipients_follow_configuration(app, factory):
    staff = factory.staff()
    app.config["NOTIFICATION_ROLES"] = {"MATERIAL_SHORTAGE": ["hr"]}

    _short_mo(factory)

    assert [n.user_id for n in Notification.query.all()] == [staff["hr"].id]


def test_mo_creation_survives_notification_failure(factory, monkeypatch):
    factory.staff()

    def broken(*a, **kw):
        raise RuntimeError("notification table locked")

    monkeypatch.setattr(notify_dao, "send", broken)

    mo = _short_mo(factory)

    assert ManufacturingOrder.query.count() == 1
    assert mo_dao.get_mo(mo.id).mo_number == "MO-00001"
    assert Notification.query.count() == 0


def test_inbox(factory):
    u = factory.user("reader", UserRole.ADMIN)
    notify_dao.send([u.id, u.id], "Hello", "First")
    notify_dao.send([u.id], "Hello", "Second")

    assert notify_dao.unread_count(u.id) == 2
    first = notify_dao.list_for_user(u.id)[-1]
    notify_dao.mark_read(first.id)
    assert notify_dao.unread_count(u.id) == 1
    assert notify_dao.mark_all_read(u.id) == 1
    assert notify_dao.unread_count(u.id) == 0


def test_only_recipient_can_mark_read(factory):
    owner = factory.user("owner", UserRole.ADMIN)
    other = factory.user("other", UserRole.ADMIN)
    (n,) = notify_dao.send([owner.id], "Hello", "Private")

    with pytest.raises(RecordNotFound):
        notify_dao.mark_read(n.id, other.id)
    assert notify_dao.unread_count(owner.id) == 1

    notify_dao.mark_read(n.id, owner.id)
    assert notify_dao.unread_count(owner.id) == 0
